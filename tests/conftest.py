"""Pytest configuration and fixtures."""

import os
import tempfile

_TEST_ROOT = tempfile.mkdtemp(prefix="legaldocs-tests-")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_TEST_ROOT}/app.db"
os.environ["JOBS_DATA_DIR"] = os.path.join(_TEST_ROOT, "jobs")
os.environ["OPENAI_API_KEY"] = ""

import asyncio
from dataclasses import dataclass
from typing import Dict, List, Optional

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from legaldocs.crud.legal_basis import legal_basis_crud
from legaldocs.crud.taxonomy import aspect_crud, subject_crud
from legaldocs.models import Base, Requirement
from legaldocs.schemas.legal_basis import AspectCreate, LegalBasisCreate, SubjectCreate
from legaldocs.services.errors import JobFailure
from legaldocs.services.identification.matcher import ArticleMatch


SAMPLE_TEXT = (
    "prefacio\nEsta norma...\n\n"
    "transitorios III\nSon aplicables...\n\n"
    "anexo 1\nContiene..."
)

NUMERAL_TEXT = "\n".join(
    [
        "NORMA OFICIAL MEXICANA",
        "6 Métodos anticonceptivos",
        "6.1 Hormonales orales",
        "6.1.1 Orales combinados",
        "6.2 Hormonales inyectables",
        "7 Seguimiento",
        "Texto del siete",
        "ANEXO I",
        "Formatos",
        "TRANSITORIOS III",
        "Vigencia",
    ]
)

DOCUMENTS = {
    "mem://numeral": NUMERAL_TEXT,
    "mem://sample": SAMPLE_TEXT,
    "mem://empty": "solo texto\nsin encabezados",
}


def build_engine(db_path):
    return create_async_engine(
        f"sqlite+aiosqlite:///{db_path}",
        connect_args={"check_same_thread": False, "timeout": 30},
        poolclass=NullPool,
    )


def build_session_maker(engine) -> async_sessionmaker:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


async def create_tables(engine) -> None:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


@dataclass
class Catalog:
    subject_id: int
    other_subject_id: int
    org_aspect_id: int
    waste_aspect_id: int
    air_aspect_id: int
    safety_aspect_id: int
    federal_id: int
    federal_waste_id: int
    state_jalisco_id: int
    state_nuevo_leon_id: int
    other_subject_lb_id: int
    air_lb_id: int
    no_document_id: int
    waste_requirement_id: int
    org_requirement_id: int


async def seed_catalog(session_maker) -> Catalog:
    async with session_maker() as db:
        amb = await subject_crud.create(db, SubjectCreate(subject_name="Ambiental", abbreviation="AMB", order_index=1))
        seg = await subject_crud.create(db, SubjectCreate(subject_name="Seguridad", abbreviation="SEG", order_index=2))
        org = await aspect_crud.create(
            db, AspectCreate(subject_id=amb.id, aspect_name="Organizacional", abbreviation="ORG", order_index=1)
        )
        res = await aspect_crud.create(
            db, AspectCreate(subject_id=amb.id, aspect_name="Residuos", abbreviation="RES", order_index=2)
        )
        air = await aspect_crud.create(
            db, AspectCreate(subject_id=amb.id, aspect_name="Aire", abbreviation="AIR", order_index=3)
        )
        saf = await aspect_crud.create(
            db, AspectCreate(subject_id=seg.id, aspect_name="Protección civil", abbreviation="SAF", order_index=1)
        )

        async def legal_basis(name, jurisdiction, subject_id, aspect_ids, url, state=None, municipality=None):
            lb = await legal_basis_crud.create(
                db,
                LegalBasisCreate(
                    legal_name=name,
                    classification="Ley",
                    jurisdiction=jurisdiction,
                    state=state,
                    municipality=municipality,
                    url=url,
                    subject_id=subject_id,
                    aspect_ids=aspect_ids,
                ),
            )
            return lb.id

        federal_id = await legal_basis("Ley General Ambiental", "Federal", amb.id, [org.id, res.id], "mem://numeral")
        federal_waste_id = await legal_basis("Reglamento de Residuos", "Federal", amb.id, [res.id], "mem://sample")
        jalisco_id = await legal_basis(
            "Ley Ambiental de Jalisco", "Estatal", amb.id, [org.id], "mem://sample", state="Jalisco"
        )
        nuevo_leon_id = await legal_basis(
            "Ley Ambiental de Nuevo León", "Estatal", amb.id, [org.id], "mem://sample", state="Nuevo León"
        )
        other_subject_id = await legal_basis("Ley de Protección Civil", "Federal", seg.id, [saf.id], "mem://sample")
        air_id = await legal_basis("Norma de Calidad del Aire", "Federal", amb.id, [air.id], "mem://empty")
        no_document_id = await legal_basis("Acuerdo sin documento", "Federal", amb.id, [org.id], None)

        waste_req = Requirement(
            subject_id=amb.id,
            requirement_number="12",
            requirement_name="Registro de generador de residuos",
            mandatory_description="Registrarse como generador.",
        )
        waste_req.aspects = [res]
        org_req = Requirement(
            subject_id=amb.id,
            requirement_number="7",
            requirement_name="Programa interno de gestión",
            mandatory_description="Contar con un programa interno.",
        )
        org_req.aspects = [org]
        db.add_all([waste_req, org_req])
        await db.commit()

        return Catalog(
            subject_id=amb.id,
            other_subject_id=seg.id,
            org_aspect_id=org.id,
            waste_aspect_id=res.id,
            air_aspect_id=air.id,
            safety_aspect_id=saf.id,
            federal_id=federal_id,
            federal_waste_id=federal_waste_id,
            state_jalisco_id=jalisco_id,
            state_nuevo_leon_id=nuevo_leon_id,
            other_subject_lb_id=other_subject_id,
            air_lb_id=air_id,
            no_document_id=no_document_id,
            waste_requirement_id=waste_req.id,
            org_requirement_id=org_req.id,
        )


class FakeDocumentSource:
    """Serves document text from memory."""

    def __init__(self, documents: Optional[Dict[str, str]] = None):
        self.documents = dict(DOCUMENTS if documents is None else documents)
        self.fetched: List[str] = []

    async def fetch_text(self, url: str) -> str:
        self.fetched.append(url)
        if url not in self.documents:
            raise JobFailure(f"Document file not found: {url}")
        return self.documents[url]


class FakeMatcher:
    """First article of each legal basis is obligatory, the rest complementary."""

    def __init__(self, delay: float = 0.0, error: Optional[Exception] = None):
        self.delay = delay
        self.error = error
        self.calls = []

    async def match(self, requirement, legal_basis, articles, intelligence_level):
        self.calls.append((requirement.id, legal_basis.id, [a.id for a in articles], intelligence_level))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error:
            raise self.error
        return [
            ArticleMatch(article_id=a.id, classification="Obligatory" if i == 0 else "Complementary")
            for i, a in enumerate(articles)
        ]


@pytest_asyncio.fixture
async def session_maker(tmp_path):
    """Fresh sqlite file with all tables created."""
    engine = build_engine(tmp_path / "test.db")
    await create_tables(engine)
    yield build_session_maker(engine)
    await engine.dispose()


@pytest_asyncio.fixture
async def db(session_maker):
    async with session_maker() as session:
        yield session


@pytest_asyncio.fixture
async def catalog(session_maker) -> Catalog:
    return await seed_catalog(session_maker)


@pytest.fixture
def document_source():
    return FakeDocumentSource()


@pytest.fixture
def matcher():
    return FakeMatcher()


@pytest.fixture
def jobs_dir(tmp_path):
    """Create a temporary job snapshot directory."""
    out_dir = tmp_path / "jobs"
    out_dir.mkdir()
    return out_dir
