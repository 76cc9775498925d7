"""
Montagem do dashboard (snapshot imutável de uma avaliação de investimento).

O dashboard congela os indicadores de mercado usados no cálculo, carrega o
resultado por valor e gera alertas a partir de regras fixas. A montagem é
uma transformação pura; persistência e PDF ficam com quem chama.
"""
from dataclasses import dataclass, fields
from datetime import date
from decimal import Decimal, ROUND_HALF_UP, localcontext
from typing import Optional, Tuple

import pandas as pd

from renix.calendario import dias_corridos, esta_vencido
from renix.config import DIAS_ALERTA_VENCIMENTO, PRECISAO_DECIMAL, QUANTIZACAO_PERCENTUAL
from renix.rendimento import (
    IndicadoresMercado,
    ResultadoRendimento,
    TermosInvestimento,
    calcular_rendimento,
    taxa_poupanca_anual,
)

RISCO_ELEVADO = 4
LIQUIDEZ_BAIXA = 4

ALERTA_RISCO_ELEVADO = "Risco elevado: classe de risco {risco} de 5"
ALERTA_VENCIMENTO_BAIXA_LIQUIDEZ = "Vencimento próximo com baixa liquidez: faltam {dias} dias para o vencimento"
ALERTA_PERDA_CAPITAL = "Perda de capital: valor líquido abaixo do valor investido"
ALERTA_VENCIDO = "Investimento vencido em {data}"

PRAZOS_LIQUIDEZ = {
    1: "D+0",
    2: "D+1",
    3: "D+30",
    4: "D+60",
    5: "Acima de D+360",
}


@dataclass(frozen=True)
class ComparativoMercado:
    """Diferença, em pontos percentuais ao ano, entre a taxa efetiva e cada referência"""
    versus_poupanca: Decimal
    versus_cdi: Decimal
    versus_ipca: Decimal

    def para_dict(self):
        return {f.name: str(getattr(self, f.name)) for f in fields(self)}


@dataclass(frozen=True)
class DashboardSnapshot:
    termos: TermosInvestimento
    indicadores_mercado: IndicadoresMercado
    rendimento: ResultadoRendimento
    comparativo_mercado: ComparativoMercado
    valor_projetado: Decimal
    prazo_liquidez: str
    alertas: Tuple[str, ...] = ()
    usuario_id: Optional[str] = None
    banco_id: Optional[str] = None
    nome_banco: Optional[str] = None
    investimento_id: Optional[str] = None
    id: Optional[str] = None
    criado_em: Optional[str] = None

    def para_dict(self):
        return {
            "id": self.id,
            "criado_em": self.criado_em,
            "investimento_id": self.investimento_id,
            "usuario_id": self.usuario_id,
            "banco_id": self.banco_id,
            "nome_banco": self.nome_banco,
            "termos": self.termos.para_dict(),
            "indicadores_mercado": self.indicadores_mercado.para_dict(),
            "rendimento": self.rendimento.para_dict(),
            "comparativo_mercado": self.comparativo_mercado.para_dict(),
            "valor_projetado": str(self.valor_projetado),
            "prazo_liquidez": self.prazo_liquidez,
            "alertas": list(self.alertas),
        }

    @classmethod
    def de_dict(cls, dados):
        """
        Reconstrói um snapshot a partir do dicionário gerado por para_dict.

        Raises:
            KeyError, ValueError: Se o dicionário estiver incompleto ou malformado
        """
        rendimento = dict(dados["rendimento"])
        rendimento["data_avaliacao"] = date.fromisoformat(rendimento["data_avaliacao"])
        for f in fields(ResultadoRendimento):
            if f.name in rendimento and f.type is Decimal:
                rendimento[f.name] = Decimal(rendimento[f.name])

        comparativo = {k: Decimal(v) for k, v in dados["comparativo_mercado"].items()}

        return cls(
            termos=TermosInvestimento.de_dict(dados["termos"]),
            indicadores_mercado=IndicadoresMercado(**dados["indicadores_mercado"]),
            rendimento=ResultadoRendimento(**rendimento),
            comparativo_mercado=ComparativoMercado(**comparativo),
            valor_projetado=Decimal(dados["valor_projetado"]),
            prazo_liquidez=dados["prazo_liquidez"],
            alertas=tuple(dados.get("alertas", [])),
            usuario_id=dados.get("usuario_id"),
            banco_id=dados.get("banco_id"),
            nome_banco=dados.get("nome_banco"),
            investimento_id=dados.get("investimento_id"),
            id=dados.get("id"),
            criado_em=dados.get("criado_em"),
        )


def comparar_com_mercado(resultado, indicadores):
    with localcontext() as ctx:
        ctx.prec = PRECISAO_DECIMAL
        taxa = resultado.taxa_efetiva_anual

        def _pp(referencia):
            return (taxa - referencia).quantize(QUANTIZACAO_PERCENTUAL, rounding=ROUND_HALF_UP)

        return ComparativoMercado(
            versus_poupanca=_pp(taxa_poupanca_anual(indicadores.selic)),
            versus_cdi=_pp(indicadores.cdi),
            versus_ipca=_pp(indicadores.ipca),
        )


def gerar_alertas(termos, resultado, limite_vencimento_dias=None):
    """
    Aplica as regras fixas de alerta do dashboard.

    Args:
        termos (TermosInvestimento): Termos do investimento
        resultado (ResultadoRendimento): Resultado da avaliação
        limite_vencimento_dias (int, optional): Janela, em dias, para o alerta
            de vencimento próximo. Padrão em config.DIAS_ALERTA_VENCIMENTO.

    Returns:
        list: Mensagens de alerta (possivelmente vazia)
    """
    if limite_vencimento_dias is None:
        limite_vencimento_dias = DIAS_ALERTA_VENCIMENTO

    alertas = []
    if termos.risco >= RISCO_ELEVADO:
        alertas.append(ALERTA_RISCO_ELEVADO.format(risco=termos.risco))

    prazo_total = dias_corridos(termos.data_inicio, termos.data_vencimento)
    dias_restantes = prazo_total - resultado.dias_corridos
    if termos.liquidez >= LIQUIDEZ_BAIXA and 0 < dias_restantes <= limite_vencimento_dias:
        alertas.append(ALERTA_VENCIMENTO_BAIXA_LIQUIDEZ.format(dias=dias_restantes))

    if resultado.valor_liquido < termos.valor_investido:
        alertas.append(ALERTA_PERDA_CAPITAL)

    if esta_vencido(termos.data_vencimento, resultado.data_avaliacao):
        alertas.append(ALERTA_VENCIDO.format(data=termos.data_vencimento.strftime('%d/%m/%Y')))

    return alertas


def construir_dashboard(termos, indicadores, resultado, usuario_id=None, banco_id=None,
                        nome_banco=None, limite_vencimento_dias=None, investimento_id=None):
    """
    Monta o snapshot do dashboard a partir de uma avaliação já calculada.

    Args:
        termos (TermosInvestimento): Termos avaliados
        indicadores (IndicadoresMercado): Indicadores usados no cálculo (copiados para o snapshot)
        resultado (ResultadoRendimento): Saída de calcular_rendimento
        usuario_id (str, optional): Usuário autenticado dono do dashboard
        banco_id (str, optional): Identificador do banco/emissor
        nome_banco (str, optional): Nome do banco para exibição
        limite_vencimento_dias (int, optional): Janela do alerta de vencimento
        investimento_id (str, optional): Investimento cadastrado que originou a avaliação

    Returns:
        DashboardSnapshot: Snapshot imutável, ainda sem id
    """
    # Cópia própria dos indicadores: alterações posteriores não afetam o snapshot
    indicadores_congelados = IndicadoresMercado(
        selic=indicadores.selic,
        cdi=indicadores.cdi,
        ipca=indicadores.ipca,
        data_referencia=indicadores.data_referencia,
    )
    projecao = calcular_rendimento(termos, indicadores_congelados, termos.data_vencimento)

    return DashboardSnapshot(
        termos=termos,
        indicadores_mercado=indicadores_congelados,
        rendimento=resultado,
        comparativo_mercado=comparar_com_mercado(resultado, indicadores_congelados),
        valor_projetado=projecao.valor_liquido,
        prazo_liquidez=PRAZOS_LIQUIDEZ[termos.liquidez],
        alertas=tuple(gerar_alertas(termos, resultado, limite_vencimento_dias)),
        usuario_id=usuario_id,
        banco_id=banco_id,
        nome_banco=nome_banco,
        investimento_id=investimento_id,
    )


def gerar_evolucao(termos, indicadores):
    """
    Série mensal dos valores bruto e líquido do início até o vencimento,
    usada no gráfico do relatório e na rota de evolução.

    Returns:
        pandas.DataFrame: Colunas data, dias_corridos, valor_bruto, valor_liquido
    """
    inicio = pd.Timestamp(termos.data_inicio)
    vencimento = pd.Timestamp(termos.data_vencimento)

    datas = []
    mes = 0
    while True:
        ponto = inicio + pd.DateOffset(months=mes)
        if ponto >= vencimento:
            break
        datas.append(ponto)
        mes += 1
    datas.append(vencimento)

    linhas = []
    for ponto in datas:
        resultado = calcular_rendimento(termos, indicadores, ponto.date())
        linhas.append({
            "data": ponto.date().isoformat(),
            "dias_corridos": resultado.dias_corridos,
            "valor_bruto": float(resultado.valor_bruto),
            "valor_liquido": float(resultado.valor_liquido),
        })
    return pd.DataFrame(linhas, columns=["data", "dias_corridos", "valor_bruto", "valor_liquido"])
