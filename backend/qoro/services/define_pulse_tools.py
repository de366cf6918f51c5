"""Pulse Tool Schemas — Anthropic Tool Use format for the business-data tools.

Invariants:
    - Read tools take no input: the organization comes from the authenticated actor,
      never from the model
    - create_task is the only tool with side effects

Design Decisions:
    - priority as enum in schema: Anthropic validates before reaching the handler
"""

TOOLS_PULSE = [
    {
        "name": "get_crm_summary",
        "description": (
            "Resumo dos clientes (CRM): total de clientes, leads ativos no funil, "
            "clientes ganhos e taxa de conversão. Ferramenta principal para "
            "perguntas sobre o estado geral dos clientes e do funil de vendas."
        ),
        "input_schema": {"type": "object", "properties": {}},
    },
    {
        "name": "list_tasks",
        "description": (
            "Lista as tarefas da organização visíveis no quadro. Use para perguntas "
            "sobre tarefas, projetos, produtividade, prazos ou pendências."
        ),
        "input_schema": {"type": "object", "properties": {}},
    },
    {
        "name": "create_task",
        "description": (
            "Cria uma nova tarefa para a organização. Use quando o usuário pedir "
            "explicitamente para criar ou registrar uma tarefa."
        ),
        "input_schema": {
            "type": "object",
            "properties": {
                "title": {"type": "string"},
                "description": {"type": "string"},
                "priority": {
                    "type": "string",
                    "enum": ["low", "medium", "high", "urgent"],
                },
                "due_date": {
                    "type": "string",
                    "description": "Data de vencimento no formato AAAA-MM-DD.",
                },
            },
            "required": ["title"],
        },
    },
    {
        "name": "list_accounts",
        "description": (
            "Lista as contas financeiras da organização (contas correntes, poupanças, "
            "cartões de crédito e caixas) com seus saldos."
        ),
        "input_schema": {"type": "object", "properties": {}},
    },
    {
        "name": "get_finance_summary",
        "description": (
            "Resumo da saúde financeira: saldo total, receitas e despesas do mês "
            "atual e o lucro líquido resultante."
        ),
        "input_schema": {"type": "object", "properties": {}},
    },
    {
        "name": "list_suppliers",
        "description": (
            "Lista os fornecedores ativos da organização com contato e condições "
            "de pagamento."
        ),
        "input_schema": {"type": "object", "properties": {}},
    },
]
