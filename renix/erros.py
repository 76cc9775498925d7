"""
Erros do motor de cálculo e dos colaboradores (armazenamento, indicadores).

Todos são recuperáveis por quem chamou: o núcleo de cálculo nunca registra
logs nem tenta novamente, apenas sinaliza a falha com um tipo específico.
"""


class RenixError(Exception):
    """Erro base da aplicação"""


class TermosInvalidosError(RenixError):
    """Termos do investimento malformados ou contraditórios"""


class IntervaloInvalidoError(RenixError):
    """Data final anterior à data inicial"""


class DataAvaliacaoInvalidaError(RenixError):
    """Data de avaliação anterior ao início do investimento"""


class DashboardNaoEncontradoError(RenixError):
    """Nenhum dashboard armazenado com o identificador informado"""

    def __init__(self, dashboard_id):
        super().__init__(f"Dashboard não encontrado: {dashboard_id}")
        self.dashboard_id = dashboard_id


class IndicadoresIndisponiveisError(RenixError):
    """Falha ao obter os indicadores de mercado na API do Banco Central"""


class InvestimentoNaoEncontradoError(RenixError):
    """Nenhum investimento cadastrado com o identificador informado"""

    def __init__(self, investimento_id):
        super().__init__(f"Investimento não encontrado: {investimento_id}")
        self.investimento_id = investimento_id
