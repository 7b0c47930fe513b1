# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Critical action catalogue and default approval configurations."""

import logging

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession

from pgben.infrastructure.database.migrations.helpers import enum_type

logger = logging.getLogger(__name__)

# (codigo, nome, descricao, modulo, entidade_alvo, nivel_criticidade)
ACOES_CRITICAS = [
    ("cancelar_solicitacao", "Cancelar Solicitação", "Cancelamento de solicitação de benefício em andamento", "solicitacao", "Solicitacao", 3),
    ("suspender_solicitacao", "Suspender Solicitação", "Suspensão temporária de solicitação de benefício", "solicitacao", "Solicitacao", 2),
    ("reativar_solicitacao", "Reativar Solicitação", "Reativação de solicitação suspensa ou cancelada", "solicitacao", "Solicitacao", 2),
    ("suspender_beneficio", "Suspender Benefício", "Suspensão de benefício ativo", "beneficio", "Beneficio", 4),
    ("bloquear_beneficio", "Bloquear Benefício", "Bloqueio temporário de benefício por irregularidade", "beneficio", "Beneficio", 4),
    ("desbloquear_beneficio", "Desbloquear Benefício", "Desbloqueio de benefício previamente bloqueado", "beneficio", "Beneficio", 3),
    ("liberar_beneficio", "Liberar Benefício", "Liberação de benefício para pagamento", "beneficio", "Beneficio", 3),
    ("cancelar_beneficio", "Cancelar Benefício", "Cancelamento definitivo de benefício", "beneficio", "Beneficio", 5),
    ("inativar_cidadao", "Inativar Cidadão", "Inativação de cadastro de cidadão", "cidadao", "Cidadao", 3),
    ("reativar_cidadao", "Reativar Cidadão", "Reativação de cadastro de cidadão inativo", "cidadao", "Cidadao", 2),
    ("excluir_cidadao", "Excluir Cidadão", "Exclusão definitiva de cadastro de cidadão (LGPD)", "cidadao", "Cidadao", 5),
    ("inativar_usuario", "Inativar Usuário", "Inativação de usuário do sistema", "usuario", "Usuario", 3),
    ("reativar_usuario", "Reativar Usuário", "Reativação de usuário inativo", "usuario", "Usuario", 2),
    ("alterar_permissoes", "Alterar Permissões", "Alteração de permissões críticas de usuário", "usuario", "Usuario", 4),
    ("excluir_documento", "Excluir Documento", "Exclusão definitiva de documento", "documento", "Documento", 3),
    ("substituir_documento", "Substituir Documento", "Substituição de documento oficial", "documento", "Documento", 2),
    ("alterar_configuracao_critica", "Alterar Configuração Crítica", "Alteração de configurações críticas do sistema", "configuracao", "Configuracao", 5),
]

CONFIGURACAO_PADRAO = {
    "estrategia_aprovacao": "qualquer_um",
    "min_aprovacoes": 1,
    "tempo_limite_horas": 24,
    "permite_auto_aprovacao": False,
    "escalacao_ativa": True,
    "tempo_escalacao_horas": 48,
    "condicoes_auto_aprovacao": None,
}

CONFIGURACOES_APROVACAO = {
    "cancelar_beneficio": {
        "estrategia_aprovacao": "unanime",
        "min_aprovacoes": 2,
        "tempo_limite_horas": 48,
        "tempo_escalacao_horas": 24,
    },
    "excluir_cidadao": {
        "estrategia_aprovacao": "unanime",
        "min_aprovacoes": 2,
        "tempo_limite_horas": 72,
        "tempo_escalacao_horas": 48,
    },
    "alterar_configuracao_critica": {
        "estrategia_aprovacao": "unanime",
        "min_aprovacoes": 3,
        "tempo_limite_horas": 24,
        "tempo_escalacao_horas": 12,
    },
    "suspender_beneficio": {
        "estrategia_aprovacao": "maioria",
        "min_aprovacoes": 2,
    },
    "bloquear_beneficio": {
        "tempo_limite_horas": 12,
        "permite_auto_aprovacao": True,
        "tempo_escalacao_horas": 24,
        "condicoes_auto_aprovacao": {"roles_permitidas": ["admin", "gestor"], "valor_maximo": 5000},
    },
    "suspender_solicitacao": {
        "permite_auto_aprovacao": True,
        "escalacao_ativa": False,
        "condicoes_auto_aprovacao": {"roles_permitidas": ["admin", "gestor", "tecnico"]},
    },
}

# Enum-typed values written below, checked against the migration labels.
CODIGOS_ACAO_CRITICA = tuple(acao[0] for acao in ACOES_CRITICAS)
ESTRATEGIAS_APROVACAO = tuple(
    sorted(
        {CONFIGURACAO_PADRAO["estrategia_aprovacao"]}
        | {
            config["estrategia_aprovacao"]
            for config in CONFIGURACOES_APROVACAO.values()
            if "estrategia_aprovacao" in config
        }
    )
)

acoes_criticas_table = sa.table(
    "acoes_criticas",
    sa.column("id", postgresql.UUID(as_uuid=False)),
    sa.column("codigo", enum_type("tipo_acao_critica_enum", CODIGOS_ACAO_CRITICA)),
    sa.column("nome", sa.String),
    sa.column("descricao", sa.Text),
    sa.column("modulo", sa.String),
    sa.column("entidade_alvo", sa.String),
    sa.column("nivel_criticidade", sa.Integer),
    sa.column("tags", postgresql.ARRAY(sa.Text)),
)

configuracoes_aprovacao_table = sa.table(
    "configuracoes_aprovacao",
    sa.column("id", postgresql.UUID(as_uuid=False)),
    sa.column("acao_critica_id", postgresql.UUID(as_uuid=False)),
    sa.column(
        "estrategia_aprovacao",
        enum_type("estrategia_aprovacao_enum", ESTRATEGIAS_APROVACAO),
    ),
    sa.column("min_aprovacoes", sa.Integer),
    sa.column("tempo_limite_horas", sa.Integer),
    sa.column("permite_auto_aprovacao", sa.Boolean),
    sa.column("condicoes_auto_aprovacao", postgresql.JSONB(none_as_null=True)),
    sa.column("escalacao_ativa", sa.Boolean),
    sa.column("tempo_escalacao_horas", sa.Integer),
)


def approval_configuration(codigo: str) -> dict:
    """Default approval configuration for a critical action, with its overrides."""
    return {**CONFIGURACAO_PADRAO, **CONFIGURACOES_APROVACAO.get(codigo, {})}


async def seed_acoes_criticas(session: AsyncSession) -> int:
    """Seed critical actions and one approval configuration per action.

    Args:
        session: Database session.

    Returns:
        Number of critical actions inserted.
    """
    rows = [
        {
            "codigo": codigo,
            "nome": nome,
            "descricao": descricao,
            "modulo": modulo,
            "entidade_alvo": entidade_alvo,
            "nivel_criticidade": nivel,
            "tags": [modulo, codigo.split("_", 1)[0]],
        }
        for codigo, nome, descricao, modulo, entidade_alvo, nivel in ACOES_CRITICAS
    ]
    result = await session.execute(
        insert(acoes_criticas_table)
        .values(rows)
        .on_conflict_do_nothing(index_elements=["codigo"])
        .returning(acoes_criticas_table.c.id)
    )
    count = len(result.fetchall())

    ids = dict(
        (
            await session.execute(
                sa.select(acoes_criticas_table.c.codigo, acoes_criticas_table.c.id)
            )
        ).all()
    )
    configuracoes = [
        {"acao_critica_id": ids[codigo], **approval_configuration(codigo)}
        for codigo in CODIGOS_ACAO_CRITICA
        if codigo in ids
    ]
    result = await session.execute(
        insert(configuracoes_aprovacao_table)
        .values(configuracoes)
        .on_conflict_do_nothing(index_elements=["acao_critica_id"])
        .returning(configuracoes_aprovacao_table.c.id)
    )
    logger.info(
        f"Seeded {count} critical actions and {len(result.fetchall())} approval configurations"
    )
    return count
