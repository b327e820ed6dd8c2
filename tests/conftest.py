"""
Pytest configuration and fixtures.
"""
import os
import random
import tempfile
from datetime import date
from pathlib import Path
from typing import Callable, Dict, Generator, Optional, Union

# Settings are read on first import; point them at throwaway storage first
_TEST_ROOT = Path(tempfile.mkdtemp(prefix="solarlens-tests-"))
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["UPLOAD_DIR"] = str(_TEST_ROOT / "uploads")
os.environ["AI_EXTRACTION_LOG_DIR"] = str(_TEST_ROOT / "ai-logs")
for _key in ("OPENAI_API_KEY", "GOOGLE_SOLAR_API_KEY", "PVWATTS_API_KEY", "SREC_API_KEY"):
    os.environ[_key] = ""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from solarlens.api.dependencies import get_analysis_service, get_document_service
from solarlens.auth.utils import create_access_token
from solarlens.database import Base, SessionLocal, engine, get_db
from solarlens.exceptions import ExtractionFailure
from solarlens.main import app
from solarlens.models.user import User, UserRole
from solarlens.services.analysis_service import AnalysisService
from solarlens.services.document_service import DocumentService
from solarlens.services.environmental import EnvironmentalImpactService
from solarlens.services.estimation import build_estimation_adapters
from solarlens.services.extraction_pipeline import build_proposal_pipeline, build_utility_bill_pipeline
from solarlens.services.synthetic_data import SyntheticDataGenerator
from solarlens.services.text_extraction import DocumentSource, ExtractedText

PROPOSAL_TEXT = """SUNNY DAYS SOLAR - RESIDENTIAL PROPOSAL
System Size: 8.5 kW
Panels: 25 x SunPower 340W
Estimated Annual Production: 11,200 kWh
Inverter: Microinverter
Model: IQ7PLUS
25 inverters
Total System Cost: $25,500
Federal Tax Credit: $7,650
State Rebates: $1,000
Net Cost: $16,850
"""

UTILITY_BILL_TEXT = """Pacific Gas and Electric
Account Number: 1234-5678-90
Billing Period: 01/05/2024 to 02/04/2024
Total Energy Usage: 850 kWh
Rate: $0.2200 per kWh
Total Amount Due: $187.00
"""


class StaticTextExtractor:
    """Text extractor double that serves canned text per uploaded filename."""

    def __init__(self, texts: Dict[str, Union[str, Exception]]):
        self.texts = texts

    async def extract_async(self, source: DocumentSource) -> ExtractedText:
        value = self.texts.get(source.filename)
        if value is None:
            raise ExtractionFailure(f"Unsupported document type: {source.mime_type}")
        if isinstance(value, Exception):
            raise value
        return ExtractedText(text=value, kind=source.kind)


@pytest.fixture(scope="function")
def db_session() -> Generator[Session, None, None]:
    """Create a fresh database session for each test."""
    Base.metadata.create_all(bind=engine)

    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def fail_next_commit(db_session: Session, monkeypatch) -> Callable[..., None]:
    """Make one commit of the test session raise after ``after`` successful ones."""
    real_commit = db_session.commit

    def arm(after: int = 0) -> None:
        remaining = [after]

        def commit():
            if remaining[0] > 0:
                remaining[0] -= 1
                return real_commit()
            monkeypatch.setattr(db_session, "commit", real_commit)
            raise OperationalError("COMMIT", {}, Exception("database is locked"))

        monkeypatch.setattr(db_session, "commit", commit)

    return arm


def _make_user(db: Session, email: str, role: UserRole = UserRole.USER, **profile) -> User:
    user = User(email=email, full_name=email.split("@")[0].title(), role=role, **profile)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def user(db_session: Session) -> User:
    return _make_user(db_session, "owner@example.com")


@pytest.fixture
def other_user(db_session: Session) -> User:
    return _make_user(db_session, "neighbor@example.com")


@pytest.fixture
def admin_user(db_session: Session) -> User:
    return _make_user(db_session, "admin@example.com", role=UserRole.ADMIN)


@pytest.fixture
def make_user(db_session: Session) -> Callable[..., User]:
    """Factory for users with a custom profile."""
    def factory(email: str, role: UserRole = UserRole.USER, **profile) -> User:
        return _make_user(db_session, email, role, **profile)
    return factory


def bearer(user: User) -> Dict[str, str]:
    token = create_access_token(str(user.id), user.email, user.role.value)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def auth_headers(user: User) -> Dict[str, str]:
    return bearer(user)


@pytest.fixture
def generator() -> SyntheticDataGenerator:
    """Seeded synthetic data generator with a fixed calendar."""
    return SyntheticDataGenerator(rng=random.Random(1234), today=lambda: date(2024, 3, 31))


@pytest.fixture
def extracted_texts() -> Dict[str, Union[str, Exception]]:
    """Canned text per filename used by the document service double."""
    return {
        "proposal.pdf": PROPOSAL_TEXT,
        "bill.pdf": UTILITY_BILL_TEXT,
        "bill.png": UTILITY_BILL_TEXT,
        "blank-bill.jpg": "",
    }


@pytest.fixture
def document_service(
    db_session: Session,
    extracted_texts: Dict[str, Union[str, Exception]],
    generator: SyntheticDataGenerator,
) -> DocumentService:
    return DocumentService(
        db_session,
        StaticTextExtractor(extracted_texts),
        build_proposal_pipeline(generator=generator),
        build_utility_bill_pipeline(generator=generator),
    )


@pytest.fixture
def analysis_service(db_session: Session) -> AnalysisService:
    """Analysis engine over offline estimation adapters and factor-based impact."""
    return AnalysisService(db_session, build_estimation_adapters(), EnvironmentalImpactService())


@pytest.fixture(scope="function")
def client(
    db_session: Session,
    document_service: DocumentService,
    analysis_service: AnalysisService,
) -> Generator[TestClient, None, None]:
    """Create a test client with database and service overrides."""

    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_document_service] = lambda: document_service
    app.dependency_overrides[get_analysis_service] = lambda: analysis_service

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def sample_pdf_content() -> bytes:
    """Minimal PDF bytes; the document service double never parses them."""
    return b"""%PDF-1.4
1 0 obj
<< /Type /Catalog /Pages 2 0 R >>
endobj
2 0 obj
<< /Type /Pages /Kids [] /Count 0 >>
endobj
trailer
<< /Root 1 0 R >>
%%EOF"""


@pytest.fixture(autouse=True)
def reset_singletons():
    """Reset global singleton instances before each test for proper isolation."""
    import solarlens.services.ai_extraction as ai_module
    import solarlens.services.estimation.factory as factory_module
    import solarlens.services.text_extraction as text_module

    ai_module._ai_extraction_instance = None
    factory_module._adapters_instance = None
    text_module._text_extractor_instance = None

    yield

    ai_module._ai_extraction_instance = None
    factory_module._adapters_instance = None
    text_module._text_extractor_instance = None


def store_documents(
    db: Session,
    owner: User,
    proposal_data: Optional[dict] = None,
    bill_data: Optional[dict] = None,
):
    """Persist a processed proposal and utility bill with the given extracted data."""
    from solarlens.models.proposal import DocumentStatus, Proposal
    from solarlens.models.utility_bill import BillFileType, UtilityBill

    proposal = Proposal(
        user_id=owner.id,
        document_id="proposal_test_0001",
        file_path="/tmp/proposal.pdf",
        original_filename="proposal.pdf",
        file_size=1024,
        mime_type="application/pdf",
        extracted_data=proposal_data or {},
        data_source="pattern-extraction",
        status=DocumentStatus.PROCESSED,
        processing_errors=[],
    )
    bill = UtilityBill(
        user_id=owner.id,
        document_id="bill_test_0001",
        file_path="/tmp/bill.pdf",
        original_filename="bill.pdf",
        file_size=2048,
        mime_type="application/pdf",
        file_type=BillFileType.PDF,
        extracted_data=bill_data or {},
        data_source="pattern-extraction",
        status=DocumentStatus.PROCESSED,
        processing_errors=[],
    )
    db.add_all([proposal, bill])
    db.commit()
    db.refresh(proposal)
    db.refresh(bill)
    return proposal, bill


@pytest.fixture
def stored_documents() -> Callable:
    return store_documents


@pytest.fixture
def headers_for() -> Callable[[User], Dict[str, str]]:
    """Authorization headers for any user."""
    return bearer


@pytest.fixture
def proposal_text() -> str:
    return PROPOSAL_TEXT


@pytest.fixture
def utility_bill_text() -> str:
    return UTILITY_BILL_TEXT
