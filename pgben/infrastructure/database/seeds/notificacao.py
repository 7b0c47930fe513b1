# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Notification templates for the approval workflow.

Bodies use Handlebars placeholders rendered by the application; every
placeholder appears in ``variaveis_requeridas``.
"""

import logging
import re

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession

from pgben.infrastructure.database.migrations.helpers import enum_type

logger = logging.getLogger(__name__)

NOTIFICATION_TEMPLATES = [
    {
        "codigo": "nova-solicitacao-aprovacao",
        "nome": "Nova Solicitação de Aprovação",
        "descricao": "Notifica aprovadores sobre nova solicitação pendente",
        "assunto": "Nova Solicitação de Aprovação - {{acao_nome}}",
        "corpo": (
            "Olá, {{aprovador_nome}}.\n\n"
            "{{solicitante_nome}} solicitou {{acao_nome}} em {{data_solicitacao}} "
            "(código {{codigo_solicitacao}}, prioridade {{prioridade}}).\n"
            "Justificativa: {{justificativa}}\n\n"
            "Prazo para análise: {{prazo_limite}}.\n"
            "Acesse {{link_aprovacao}} para aprovar ou rejeitar."
        ),
        "canais_disponiveis": ["email", "in_app"],
        "prioridade": "alta",
    },
    {
        "codigo": "solicitacao-aprovacao-processada",
        "nome": "Solicitação de Aprovação Processada",
        "descricao": "Informa o solicitante sobre a decisão tomada",
        "assunto": "Solicitação {{status_decisao}} - {{acao_nome}}",
        "corpo": (
            "Olá, {{solicitante_nome}}.\n\n"
            "Sua solicitação {{codigo_solicitacao}} para {{acao_nome}} foi "
            "{{status_decisao}} por {{aprovador_nome}} em {{data_processamento}}.\n"
            "Observações: {{observacoes}}\n\n"
            "Detalhes em {{link_solicitacao}}."
        ),
        "canais_disponiveis": ["email", "in_app"],
        "prioridade": "alta",
    },
    {
        "codigo": "prazo-aprovacao-vencendo",
        "nome": "Prazo de Aprovação Vencendo",
        "descricao": "Alerta o aprovador de que o prazo está próximo do fim",
        "assunto": "URGENTE: Prazo de Aprovação Vencendo - {{acao_nome}}",
        "corpo": (
            "Olá, {{aprovador_nome}}.\n\n"
            "Restam {{horas_restantes}} horas para analisar a solicitação "
            "{{codigo_solicitacao}} ({{acao_nome}}) de {{solicitante_nome}}.\n"
            "Sem decisão até {{prazo_limite}} ela será escalada para {{proximo_aprovador}}.\n\n"
            "Analisar: {{link_aprovacao}}"
        ),
        "canais_disponiveis": ["email", "in_app", "sms"],
        "prioridade": "urgente",
    },
    {
        "codigo": "delegacao-aprovacao-criada",
        "nome": "Delegação de Aprovação Criada",
        "descricao": "Confirma uma delegação de aprovação a delegante e delegado",
        "assunto": "Delegação de Aprovação Criada - {{acao_nome}}",
        "corpo": (
            "Olá, {{destinatario_nome}}.\n\n"
            "{{delegante_nome}} delegou a aprovação de {{acao_nome}} a "
            "{{delegado_nome}} de {{data_criacao}} até {{data_expiracao}}.\n"
            "Motivo: {{motivo}}\n\n"
            "Detalhes em {{link_delegacao}}."
        ),
        "canais_disponiveis": ["email", "in_app"],
        "prioridade": "media",
    },
    {
        "codigo": "escalacao-automatica-aprovacao",
        "nome": "Escalação Automática de Aprovação",
        "descricao": "Avisa o novo aprovador de uma solicitação escalada",
        "assunto": "Escalação Automática - {{acao_nome}}",
        "corpo": (
            "Olá, {{destinatario_nome}}.\n\n"
            "A solicitação {{codigo_solicitacao}} ({{acao_nome}}) de "
            "{{solicitante_nome}} não foi analisada por {{aprovador_anterior}} "
            "e foi escalada para {{novo_aprovador}} em {{data_escalacao}}.\n"
            "Novo prazo: {{novo_prazo}}.\n\n"
            "Analisar: {{link_aprovacao}}"
        ),
        "canais_disponiveis": ["email", "in_app"],
        "prioridade": "alta",
    },
]

TIPO_TEMPLATE = "aprovacao"
CATEGORIA_TEMPLATE = "aprovacao"

# Enum-typed values written below, checked against the migration labels.
TIPOS_NOTIFICACAO = (TIPO_TEMPLATE,)
PRIORIDADES_NOTIFICACAO = tuple(
    sorted({template["prioridade"] for template in NOTIFICATION_TEMPLATES})
)
CANAIS = tuple(
    sorted({canal for template in NOTIFICATION_TEMPLATES for canal in template["canais_disponiveis"]})
)

_PLACEHOLDER = r"\{\{\s*([a-z_]+)\s*\}\}"

notification_template_table = sa.table(
    "notification_template",
    sa.column("id", postgresql.UUID(as_uuid=False)),
    sa.column("codigo", sa.String),
    sa.column("nome", sa.String),
    sa.column("tipo", enum_type("tipo_notificacao_enum", TIPOS_NOTIFICACAO)),
    sa.column("descricao", sa.Text),
    sa.column("assunto", sa.String),
    sa.column("corpo", sa.Text),
    sa.column("canais_disponiveis", postgresql.ARRAY(enum_type("canal_enum", CANAIS))),
    sa.column("variaveis_requeridas", postgresql.JSONB),
    sa.column("categoria", sa.String),
    sa.column(
        "prioridade",
        enum_type("prioridade_notificacao_enum", PRIORIDADES_NOTIFICACAO),
    ),
)


def template_variables(template: dict) -> list[str]:
    """Placeholders used by a template's subject and body, in order of appearance."""
    found = re.findall(_PLACEHOLDER, template["assunto"] + "\n" + template["corpo"])
    return list(dict.fromkeys(found))


async def seed_notification_templates(session: AsyncSession) -> int:
    """Seed the approval workflow notification templates.

    Args:
        session: Database session.

    Returns:
        Number of templates inserted.
    """
    rows = [
        {
            **template,
            "tipo": TIPO_TEMPLATE,
            "categoria": CATEGORIA_TEMPLATE,
            "variaveis_requeridas": template_variables(template),
        }
        for template in NOTIFICATION_TEMPLATES
    ]
    result = await session.execute(
        insert(notification_template_table)
        .values(rows)
        .on_conflict_do_nothing(index_elements=["codigo"])
        .returning(notification_template_table.c.id)
    )
    count = len(result.fetchall())
    logger.info(f"Seeded {count} notification templates")
    return count
