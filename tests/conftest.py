import io
import sys
import zipfile
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Union
from xml.sax.saxutils import escape

import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from cvingest.adapters.adapter_registry import AdapterRegistry  # noqa: E402
from cvingest.adapters.base import TextAdapter  # noqa: E402
from cvingest.circuit_breaker import CircuitBreaker  # noqa: E402
from cvingest.config import ParserConfig  # noqa: E402
from cvingest.models import AdapterDescriptor, AdapterOutput  # noqa: E402
from cvingest.orchestrator import ExtractionOrchestrator  # noqa: E402
from cvingest.shared import MEDIA_TYPE_PDF, MEDIA_TYPE_TEXT, UploadedDocument  # noqa: E402


SCENARIO_TEXT = (
    "Jane Doe\n"
    "jane.doe@example.com\n"
    "+44 7700 900123\n"
    "Senior Policy Manager\n"
    "Ministry of Example"
)

FULL_CV_TEXT = """Curriculum Vitae
John Smith
john.smith@example.org | 020 7946 0958

Profile
Experienced communications professional with a background in media relations,
campaign strategy and stakeholder engagement.

Employment History
Head of Communications
Green Futures Foundation
2019 - present
Press Officer at Acme Media Ltd
2015 - 2019

Education
University of Leeds, BA Politics
"""


class FakeClock:
    """Monotonic clock the tests move by hand."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


Step = Union[AdapterOutput, BaseException, str]


class FakeAdapter(TextAdapter):
    """Scripted adapter: each call consumes the next step (the last one repeats)."""

    def __init__(self, name: str, steps: Sequence[Step], source_tag: str = "pdf", confidence: float = 0.8):
        super().__init__(name=name)
        self.source_tag = source_tag
        self.base_confidence = confidence
        self.steps: List[Step] = list(steps)
        self.calls = 0

    def extract(self, document: UploadedDocument) -> AdapterOutput:
        step = self.steps[min(self.calls, len(self.steps) - 1)]
        self.calls += 1
        if isinstance(step, BaseException):
            raise step
        if isinstance(step, str):
            return self._output(step)
        return step


def descriptor(name: str, priority: int = 1, enabled: bool = True,
               media_types=(MEDIA_TYPE_PDF,)) -> AdapterDescriptor:
    return AdapterDescriptor(name=name, priority=priority, enabled=enabled, media_types=frozenset(media_types))


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def sleeps() -> List[float]:
    return []


@pytest.fixture
def make_orchestrator(clock, sleeps):
    """Build an orchestrator over fake adapters: make_orchestrator([(descriptor, adapter), ...])."""

    def _make(pairs, config: Optional[ParserConfig] = None, breaker: Optional[CircuitBreaker] = None):
        config = config or ParserConfig(retry_delay_ms=100)
        registry = AdapterRegistry([d for d, _ in pairs], {d.name: a for d, a in pairs})
        breaker = breaker or CircuitBreaker(
            failure_threshold=config.circuit_breaker.failure_threshold,
            cooldown_s=config.circuit_breaker.cooldown_s,
            _time=clock,
        )
        return ExtractionOrchestrator(registry, breaker, config, _sleep=sleeps.append, _time=clock)

    return _make


@pytest.fixture
def pdf_document() -> UploadedDocument:
    return UploadedDocument(content=b"%PDF-1.4 fake", media_type=MEDIA_TYPE_PDF, filename="cv.pdf")


@pytest.fixture
def text_document() -> UploadedDocument:
    return UploadedDocument(content=SCENARIO_TEXT.encode("utf-8"), media_type=MEDIA_TYPE_TEXT, filename="cv.txt")


W_NS = "http://schemas.openxmlformats.org/wordprocessingml/2006/main"


def _paragraphs_xml(paragraphs: Sequence[str]) -> str:
    return "".join(f"<w:p><w:r><w:t xml:space=\"preserve\">{escape(p)}</w:t></w:r></w:p>" for p in paragraphs)


def build_docx(body: Sequence[str], headers: Optional[Dict[str, Sequence[str]]] = None) -> bytes:
    """Minimal .docx: word/document.xml plus optional header parts."""
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w") as z:
        z.writestr("[Content_Types].xml", "<Types/>")
        z.writestr(
            "word/document.xml",
            f'<w:document xmlns:w="{W_NS}"><w:body>{_paragraphs_xml(body)}</w:body></w:document>',
        )
        for part, paragraphs in (headers or {}).items():
            z.writestr(f"word/{part}", f'<w:hdr xmlns:w="{W_NS}">{_paragraphs_xml(paragraphs)}</w:hdr>')
    return buf.getvalue()


@pytest.fixture
def make_docx():
    return build_docx
