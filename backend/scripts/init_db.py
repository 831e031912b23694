"""初始化数据库并添加示例数据"""
import asyncio
import sys
from pathlib import Path

# 添加项目根目录到Python路径
sys.path.insert(0, str(Path(__file__).parent.parent))

from sqlalchemy import text

from legaldocs.database import init_db, async_session_maker
from legaldocs.models import Subject, Aspect, LegalBasis, Requirement

SAMPLE_DIR = Path(__file__).parent.parent / "data" / "samples"

SAMPLE_TEXT = """NORMA OFICIAL MEXICANA NOM-005-SSA2-1993
prefacio
Esta norma fue elaborada por las unidades administrativas participantes.

6 Métodos anticonceptivos
6.1 Hormonales orales
6.1.1 Orales combinados
6.2 Hormonales inyectables

7 Seguimiento de usuarios

transitorios
La presente norma entrará en vigor al día siguiente de su publicación.

anexo 1
Contiene los formatos de registro.
"""


async def init_sample_data():
    """初始化示例数据"""

    # 先初始化表
    await init_db()

    async with async_session_maker() as session:
        # 强制清空所有表（用于重新初始化）
        for table in [
            "req_identification_articles",
            "req_identification_requirement_legal_basis",
            "req_identification_requirements",
            "req_identification_aspects",
            "req_identification_legal_basis",
            "req_identifications",
            "requirement_aspects",
            "requirements",
            "article",
            "legal_basis_aspects",
            "legal_basis",
            "aspects",
            "subjects",
        ]:
            await session.execute(text(f"DELETE FROM {table}"))
        await session.commit()

        print("📝 开始添加示例数据...")

        SAMPLE_DIR.mkdir(parents=True, exist_ok=True)
        sample_file = SAMPLE_DIR / "nom-005.txt"
        sample_file.write_text(SAMPLE_TEXT, encoding="utf-8")

        # 1. 主题与方面
        subject = Subject(subject_name="Ambiental", abbreviation="AMB", order_index=1)
        organizational = Aspect(aspect_name="Organizacional", abbreviation="ORG", order_index=1)
        waste = Aspect(aspect_name="Residuos", abbreviation="RES", order_index=2)
        subject.aspects = [organizational, waste]
        session.add(subject)
        await session.flush()

        # 2. 法律依据
        federal = LegalBasis(
            legal_name="NOM-005-SSA2-1993",
            abbreviation="NOM-005",
            classification="Norma",
            jurisdiction="Federal",
            url=str(sample_file),
            subject_id=subject.id,
        )
        federal.aspects = [organizational, waste]
        session.add(federal)

        # 3. 需求
        requirements_data = [
            ("1", "Registro de generador de residuos", [waste]),
            ("2", "Programa interno de gestión ambiental", [organizational]),
        ]
        for number, name, aspects in requirements_data:
            requirement = Requirement(
                subject_id=subject.id,
                requirement_number=number,
                requirement_name=name,
                mandatory_description=f"{name}: obligación principal.",
                complementary_description=f"{name}: documentación de soporte.",
            )
            requirement.aspects = aspects
            session.add(requirement)

        await session.commit()

        print("✅ 示例数据添加成功！")
        print("   - 创建了 1 个主题、2 个方面")
        print("   - 创建了 1 个法律依据（文本位于 data/samples/nom-005.txt）")
        print(f"   - 创建了 {len(requirements_data)} 个需求")


if __name__ == "__main__":
    print("=" * 60)
    print("🚀 LegalDocs - 数据库初始化")
    print("=" * 60)

    asyncio.run(init_sample_data())

    print("\n✨ 初始化完成！现在可以启动服务了。")
    print("   运行命令: uvicorn legaldocs.main:app --reload --port 8000")
    print("=" * 60)
