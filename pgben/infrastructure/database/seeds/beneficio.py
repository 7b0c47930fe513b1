# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Benefit type seed data.

The four eventual benefits offered by SEMTAS, each with the documents it
requires and the workflow its requests go through.
"""

import logging
from decimal import Decimal

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession

from pgben.infrastructure.database.migrations.helpers import enum_type

logger = logging.getLogger(__name__)

FLUXO_PADRAO = [
    (1, "abertura", "Abertura da solicitação", 1),
    (2, "analise_documentos", "Análise documental", 5),
    (3, "analise_tecnica", "Parecer técnico", 5),
    (4, "aprovacao", "Aprovação pela coordenação", 3),
    (5, "liberacao", "Liberação do benefício", 5),
]

DOCUMENTOS_BASICOS = [
    ("cpf", "CPF do requerente", True),
    ("rg", "Documento de identidade", True),
    ("comprovante_residencia", "Comprovante de residência", True),
    ("comprovante_renda", "Comprovante de renda familiar", True),
]

TIPOS_BENEFICIO = [
    {
        "codigo": "NATALIDADE",
        "nome": "Auxílio Natalidade",
        "descricao": "Benefício eventual para gestantes e recém-nascidos em situação de vulnerabilidade.",
        "base_legal": "Lei Municipal nº 7.205/2021",
        "periodicidade": "unico",
        "valor": Decimal("500.00"),
        "criterios_elegibilidade": {"renda_per_capita_maxima": 0.5, "residencia_minima_meses": 12},
        "requisitos": DOCUMENTOS_BASICOS
        + [
            ("cartao_gestante", "Cartão da gestante", True),
            ("certidao_nascimento", "Certidão de nascimento do recém-nascido", False),
        ],
    },
    {
        "codigo": "ALUGUEL_SOCIAL",
        "nome": "Aluguel Social",
        "descricao": "Auxílio temporário para pagamento de aluguel a famílias desabrigadas ou em risco.",
        "base_legal": "Lei Municipal nº 7.205/2021",
        "periodicidade": "mensal",
        "periodicidade_maxima": 6,
        "permite_renovacao": True,
        "valor": Decimal("600.00"),
        "criterios_elegibilidade": {"renda_per_capita_maxima": 0.5, "residencia_minima_meses": 24},
        "requisitos": DOCUMENTOS_BASICOS
        + [
            ("contrato_aluguel", "Contrato de aluguel", True),
            ("boletim_ocorrencia", "Boletim de ocorrência", False),
        ],
    },
    {
        "codigo": "FUNERAL",
        "nome": "Auxílio Funeral",
        "descricao": "Custeio de urna funerária e translado para famílias sem condições de arcar com o sepultamento.",
        "base_legal": "Lei Municipal nº 7.205/2021",
        "periodicidade": "unico",
        "valor": Decimal("1600.00"),
        "criterios_elegibilidade": {"renda_per_capita_maxima": 0.5},
        "requisitos": DOCUMENTOS_BASICOS + [("certidao_obito", "Certidão de óbito", True)],
    },
    {
        "codigo": "CESTA_BASICA",
        "nome": "Cesta Básica",
        "descricao": "Entrega de cestas básicas a famílias em situação de insegurança alimentar.",
        "base_legal": "Lei Municipal nº 7.205/2021",
        "periodicidade": "mensal",
        "periodicidade_maxima": 3,
        "permite_renovacao": True,
        "valor": Decimal("150.00"),
        "criterios_elegibilidade": {"renda_per_capita_maxima": 0.25},
        "requisitos": DOCUMENTOS_BASICOS,
    },
]

# Enum-typed values written below, checked against the migration labels.
PERIODICIDADES = tuple(sorted({tipo["periodicidade"] for tipo in TIPOS_BENEFICIO}))
TIPOS_DOCUMENTO = tuple(
    sorted({doc for tipo in TIPOS_BENEFICIO for doc, _nome, _obrigatorio in tipo["requisitos"]})
)
TIPOS_ETAPA = tuple(etapa for _ordem, etapa, _nome, _prazo in FLUXO_PADRAO)

tipo_beneficio_table = sa.table(
    "tipo_beneficio",
    sa.column("id", postgresql.UUID(as_uuid=False)),
    sa.column("codigo", sa.String),
    sa.column("nome", sa.String),
    sa.column("descricao", sa.Text),
    sa.column("base_legal", sa.Text),
    sa.column("periodicidade", enum_type("periodicidade_enum", PERIODICIDADES)),
    sa.column("periodicidade_maxima", sa.Integer),
    sa.column("permite_renovacao", sa.Boolean),
    sa.column("valor", sa.Numeric(10, 2)),
    sa.column("criterios_elegibilidade", postgresql.JSONB),
    sa.column("removed_at", sa.DateTime(timezone=True)),
)

requisito_documento_table = sa.table(
    "requisito_documento",
    sa.column("id", postgresql.UUID(as_uuid=False)),
    sa.column("tipo_beneficio_id", postgresql.UUID(as_uuid=False)),
    sa.column("tipo_documento", enum_type("tipo_documento_enum", TIPOS_DOCUMENTO)),
    sa.column("nome", sa.String),
    sa.column("obrigatorio", sa.Boolean),
    sa.column("removed_at", sa.DateTime(timezone=True)),
)

fluxo_beneficio_table = sa.table(
    "fluxo_beneficio",
    sa.column("id", postgresql.UUID(as_uuid=False)),
    sa.column("tipo_beneficio_id", postgresql.UUID(as_uuid=False)),
    sa.column("ordem", sa.Integer),
    sa.column("tipo_etapa", enum_type("tipo_etapa_enum", TIPOS_ETAPA)),
    sa.column("nome_etapa", sa.String),
    sa.column("prazo_dias", sa.Integer),
)


async def _get_tipo_beneficio_id(session: AsyncSession, codigo: str) -> str | None:
    return await session.scalar(
        sa.select(tipo_beneficio_table.c.id).where(
            tipo_beneficio_table.c.codigo == codigo,
            tipo_beneficio_table.c.removed_at.is_(None),
        )
    )


async def seed_tipos_beneficio(session: AsyncSession) -> int:
    """Seed benefit types with their document requirements and workflow.

    Requirements and workflow steps are added for types that already exist
    too, so a partially seeded database is completed.

    Args:
        session: Database session.

    Returns:
        Number of benefit types inserted.
    """
    count = 0
    for tipo in TIPOS_BENEFICIO:
        values = {key: value for key, value in tipo.items() if key != "requisitos"}
        tipo_id = await _get_tipo_beneficio_id(session, tipo["codigo"])
        if tipo_id is None:
            tipo_id = await session.scalar(
                insert(tipo_beneficio_table)
                .values(**values)
                .returning(tipo_beneficio_table.c.id)
            )
            count += 1

        await session.execute(
            insert(requisito_documento_table)
            .values(
                [
                    {
                        "tipo_beneficio_id": tipo_id,
                        "tipo_documento": tipo_documento,
                        "nome": nome,
                        "obrigatorio": obrigatorio,
                    }
                    for tipo_documento, nome, obrigatorio in tipo["requisitos"]
                ]
            )
            .on_conflict_do_nothing(
                index_elements=["tipo_beneficio_id", "tipo_documento"],
                index_where=requisito_documento_table.c.removed_at.is_(None),
            )
        )
        await session.execute(
            insert(fluxo_beneficio_table)
            .values(
                [
                    {
                        "tipo_beneficio_id": tipo_id,
                        "ordem": ordem,
                        "tipo_etapa": tipo_etapa,
                        "nome_etapa": nome_etapa,
                        "prazo_dias": prazo_dias,
                    }
                    for ordem, tipo_etapa, nome_etapa, prazo_dias in FLUXO_PADRAO
                ]
            )
            .on_conflict_do_nothing(index_elements=["tipo_beneficio_id", "ordem"])
        )

    logger.info(f"Seeded {count} benefit types")
    return count
