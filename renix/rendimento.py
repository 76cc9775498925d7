"""
Cálculo de rendimento de investimentos de renda fixa.

Convenções:
    - Taxas são percentuais anuais (12 = 12% a.a.).
    - Capitalização composta na base corridos/365.
    - Valores monetários são arredondados para centavos (ROUND_HALF_UP) e o
      valor líquido é obtido a partir dos componentes já arredondados, de modo
      que valor_liquido = valor_bruto - imposto_renda - iof - outras_taxas
      vale exatamente.
    - O IOF é descontado do ganho antes do cálculo do IR.
    - Produtos isentos (LCI/LCA, marcados por quem chama) não pagam IR nem IOF.
    - outras_taxas reúne administração, custódia e performance.

Todas as funções são puras: mesmas entradas produzem o mesmo resultado.
"""
from dataclasses import dataclass, fields
from datetime import date, datetime
from decimal import Decimal, ROUND_HALF_UP, localcontext
from enum import Enum
from typing import Optional

from renix.calendario import dias_corridos
from renix.config import (
    BASE_DIAS_ANO,
    LIMITAR_LIQUIDO_NEGATIVO,
    PRECISAO_DECIMAL,
    QUANTIZACAO_PERCENTUAL,
    QUANTIZACAO_VALOR,
)
from renix.erros import DataAvaliacaoInvalidaError, TermosInvalidosError
from renix.tributos import aliquota_iof, aliquota_ir

ZERO = Decimal("0")
CEM = Decimal("100")
SELIC_LIMITE_POUPANCA = Decimal("8.5")


class TipoTaxa(str, Enum):
    PREFIXADO = "PREFIXADO"
    CDI = "CDI"
    IPCA = "IPCA"
    POUPANCA = "POUPANCA"


# Tipos em que a taxa anual é apenas informativa
TAXA_ANUAL_OPCIONAL = (TipoTaxa.CDI, TipoTaxa.POUPANCA)


class TipoInvestimento(str, Enum):
    CDB = "CDB"
    LCI = "LCI"
    LCA = "LCA"
    TESOURO_SELIC = "TESOURO_SELIC"
    TESOURO_IPCA = "TESOURO_IPCA"
    TESOURO_PREFIXADO = "TESOURO_PREFIXADO"
    POUPANCA = "POUPANCA"
    FUNDOS_RF = "FUNDOS_RF"
    FUNDOS_MULTI = "FUNDOS_MULTI"
    ACOES = "ACOES"
    FII = "FII"


def _decimal(valor):
    if valor is None or isinstance(valor, Decimal):
        return valor
    if isinstance(valor, bool):
        raise TermosInvalidosError(f"Valor numérico inválido: {valor!r}")
    return Decimal(str(valor))


def _data_iso(valor):
    return valor.isoformat() if isinstance(valor, (date, datetime)) else valor


def _serializar(valor):
    if isinstance(valor, Decimal):
        return str(valor)
    if isinstance(valor, Enum):
        return valor.value
    return _data_iso(valor)


@dataclass(frozen=True)
class TermosInvestimento:
    valor_investido: Decimal
    data_inicio: date
    data_vencimento: date
    taxa_anual: Optional[Decimal]            # prefixada, spread sobre IPCA ou informativa no CDI
    tipo_taxa: TipoTaxa
    percentual_indexador: Optional[Decimal] = None
    liquidez: int = 1                        # 1: D+0 ... 5: acima de D+360
    risco: int = 1                           # 1: muito baixo ... 5: muito alto
    garantia_fgc: bool = False
    isento_ir: bool = False
    taxa_administracao: Decimal = ZERO       # % a.a. sobre o capital
    taxa_custodia: Decimal = ZERO            # % a.a. sobre o capital
    taxa_performance: Decimal = ZERO         # % sobre o ganho acima do benchmark
    benchmark_performance: Optional[Decimal] = None  # % a.a.; None usa o CDI
    tipo_investimento: TipoInvestimento = TipoInvestimento.CDB

    def __post_init__(self):
        for nome in ("valor_investido", "taxa_anual", "percentual_indexador",
                     "taxa_administracao", "taxa_custodia", "taxa_performance",
                     "benchmark_performance"):
            object.__setattr__(self, nome, _decimal(getattr(self, nome)))
        try:
            object.__setattr__(self, "tipo_taxa", TipoTaxa(self.tipo_taxa))
            object.__setattr__(self, "tipo_investimento", TipoInvestimento(self.tipo_investimento))
        except ValueError as e:
            raise TermosInvalidosError(str(e)) from e

    @property
    def indexado(self):
        return self.tipo_taxa in (TipoTaxa.CDI, TipoTaxa.IPCA)

    def para_dict(self):
        return {f.name: _serializar(getattr(self, f.name)) for f in fields(self)}

    @classmethod
    def de_dict(cls, dados):
        termos = dict(dados)
        for campo in ("data_inicio", "data_vencimento"):
            termos[campo] = date.fromisoformat(termos[campo])
        return cls(**termos)


@dataclass(frozen=True)
class InvestimentoCadastrado:
    """Termos de um investimento guardados para reavaliações futuras"""
    termos: TermosInvestimento
    usuario_id: Optional[str] = None
    banco_id: Optional[str] = None
    nome_banco: Optional[str] = None
    titulo: Optional[str] = None
    id: Optional[str] = None
    criado_em: Optional[str] = None

    def para_dict(self):
        dados = {f.name: getattr(self, f.name) for f in fields(self) if f.name != "termos"}
        dados["termos"] = self.termos.para_dict()
        return dados

    @classmethod
    def de_dict(cls, dados):
        registro = dict(dados)
        registro["termos"] = TermosInvestimento.de_dict(registro["termos"])
        return cls(**registro)


@dataclass(frozen=True)
class IndicadoresMercado:
    selic: Decimal
    cdi: Decimal
    ipca: Decimal
    data_referencia: Optional[str] = None

    def __post_init__(self):
        for nome in ("selic", "cdi", "ipca"):
            object.__setattr__(self, nome, _decimal(getattr(self, nome)))

    def para_dict(self):
        return {f.name: _serializar(getattr(self, f.name)) for f in fields(self)}


@dataclass(frozen=True)
class ResultadoRendimento:
    valor_investido: Decimal
    valor_bruto: Decimal
    imposto_renda: Decimal
    iof: Decimal
    outras_taxas: Decimal
    valor_liquido: Decimal
    rentabilidade_periodo: Decimal
    rentabilidade_anualizada: Decimal
    rentabilidade_liquida_periodo: Decimal
    taxa_efetiva_anual: Decimal
    aliquota_ir: Decimal
    aliquota_iof: Decimal
    dias_corridos: int
    data_avaliacao: date
    anualizacao_indefinida: bool = False
    valor_liquido_limitado: bool = False

    @property
    def ganho_bruto(self):
        return self.valor_bruto - self.valor_investido

    @property
    def valor_rendido(self):
        return self.valor_liquido - self.valor_investido

    def para_dict(self):
        return {f.name: _serializar(getattr(self, f.name)) for f in fields(self)}


def validar_termos(termos):
    """
    Verifica a consistência dos termos do investimento.

    Raises:
        TermosInvalidosError: Na primeira inconsistência encontrada
    """
    if termos.valor_investido is None or termos.valor_investido <= ZERO:
        raise TermosInvalidosError("O valor investido deve ser positivo")
    if termos.data_vencimento <= termos.data_inicio:
        raise TermosInvalidosError("A data de vencimento deve ser posterior à data de início")

    if termos.tipo_taxa in TAXA_ANUAL_OPCIONAL:
        # No CDI e na poupança a taxa anual é apenas informativa, mas se vier precisa ser positiva
        if termos.taxa_anual is not None and termos.taxa_anual <= ZERO:
            raise TermosInvalidosError("A taxa anual deve ser positiva")
    elif termos.taxa_anual is None or termos.taxa_anual <= ZERO:
        raise TermosInvalidosError("A taxa anual deve ser positiva")

    if termos.indexado:
        if termos.percentual_indexador is None:
            raise TermosInvalidosError(f"Percentual do indexador obrigatório para taxa {termos.tipo_taxa.value}")
        if termos.percentual_indexador <= ZERO:
            raise TermosInvalidosError("O percentual do indexador deve ser positivo")
    elif termos.percentual_indexador is not None:
        raise TermosInvalidosError(f"Percentual do indexador informado para taxa {termos.tipo_taxa.value}")

    for nome in ("liquidez", "risco"):
        classe = getattr(termos, nome)
        if not isinstance(classe, int) or isinstance(classe, bool) or not 1 <= classe <= 5:
            raise TermosInvalidosError(f"Classe de {nome} deve estar entre 1 e 5, recebido {classe!r}")

    if termos.taxa_administracao < ZERO or termos.taxa_custodia < ZERO or termos.taxa_performance < ZERO:
        raise TermosInvalidosError("Taxas de administração, custódia e performance não podem ser negativas")
    if termos.benchmark_performance is not None and termos.benchmark_performance < ZERO:
        raise TermosInvalidosError("O benchmark da taxa de performance não pode ser negativo")


def taxa_poupanca_anual(selic):
    """
    Rendimento anual (%) da poupança pela regra vigente (TR considerada zero):
    SELIC acima de 8,5% a.a. rende 0,5% a.m.; caso contrário 70% da SELIC.
    """
    if selic > SELIC_LIMITE_POUPANCA:
        mensal = Decimal("0.005")
    else:
        mensal = Decimal("0.70") * selic / CEM / 12
    return ((1 + mensal) ** 12 - 1) * CEM


def taxa_efetiva_anual(termos, indicadores):
    """
    Resolve a taxa anual efetiva (%) conforme o tipo de remuneração.

    - PREFIXADO: a própria taxa contratada
    - CDI: CDI * percentual / 100 (ex.: 110% do CDI)
    - IPCA: IPCA * percentual / 100 + spread contratado
    - POUPANCA: regra da poupança sobre a SELIC
    """
    if termos.tipo_taxa == TipoTaxa.PREFIXADO:
        return termos.taxa_anual
    if termos.tipo_taxa == TipoTaxa.CDI:
        return indicadores.cdi * termos.percentual_indexador / CEM
    if termos.tipo_taxa == TipoTaxa.POUPANCA:
        return taxa_poupanca_anual(indicadores.selic)
    return indicadores.ipca * termos.percentual_indexador / CEM + termos.taxa_anual


def fator_composto(taxa_anual_pct, dias):
    """Fator (1 + taxa)^(dias/365) para uma taxa anual em percentual"""
    if dias == 0:
        return Decimal("1")
    base = 1 + taxa_anual_pct / CEM
    if base <= ZERO:
        raise TermosInvalidosError(f"Taxa anual efetiva inválida: {taxa_anual_pct}%")
    return base ** (Decimal(dias) / Decimal(BASE_DIAS_ANO))


def anualizar(rentabilidade_periodo_pct, dias):
    """
    Converte a rentabilidade de um período de `dias` dias em taxa anual (%).

    Returns:
        tuple: (taxa_anual, indefinida) - para dias == 0 retorna (0, True)
    """
    if dias == 0:
        return ZERO, True
    base = 1 + rentabilidade_periodo_pct / CEM
    return (base ** (Decimal(BASE_DIAS_ANO) / Decimal(dias)) - 1) * CEM, False


def custo_performance(termos, indicadores, valor_bruto, dias):
    """
    Taxa de performance (R$): percentual sobre o quanto o valor bruto superou
    o capital corrigido pelo benchmark (CDI quando não informado).
    Zero quando não há taxa ou o benchmark não foi superado.
    """
    if termos.taxa_performance == ZERO:
        return ZERO
    benchmark = termos.benchmark_performance
    if benchmark is None:
        benchmark = indicadores.cdi
    excedente = valor_bruto - termos.valor_investido * fator_composto(benchmark, dias)
    if excedente <= ZERO:
        return ZERO
    return excedente * termos.taxa_performance / CEM


def _centavos(valor):
    return valor.quantize(QUANTIZACAO_VALOR, rounding=ROUND_HALF_UP)


def _percentual(valor):
    return valor.quantize(QUANTIZACAO_PERCENTUAL, rounding=ROUND_HALF_UP)


def calcular_rendimento(termos, indicadores, data_avaliacao, limitar_liquido_negativo=None):
    """
    Calcula o rendimento bruto, os tributos, as taxas e o valor líquido de um
    investimento na data de avaliação (limitada ao vencimento).

    Args:
        termos (TermosInvestimento): Termos do investimento
        indicadores (IndicadoresMercado): SELIC, CDI e IPCA anuais
        data_avaliacao (datetime.date): Data em que o investimento é avaliado
        limitar_liquido_negativo (bool, optional): Se True, um valor líquido
            negativo é trocado por zero (e o resultado sinaliza isso). Padrão
            definido em config.LIMITAR_LIQUIDO_NEGATIVO.

    Returns:
        ResultadoRendimento: Resultado imutável da avaliação

    Raises:
        TermosInvalidosError: Termos inconsistentes
        DataAvaliacaoInvalidaError: Avaliação anterior ao início do investimento
    """
    validar_termos(termos)
    if data_avaliacao < termos.data_inicio:
        raise DataAvaliacaoInvalidaError(
            f"Data de avaliação {data_avaliacao} anterior ao início {termos.data_inicio}"
        )
    if limitar_liquido_negativo is None:
        limitar_liquido_negativo = LIMITAR_LIQUIDO_NEGATIVO

    data_final = min(termos.data_vencimento, data_avaliacao)
    dias = dias_corridos(termos.data_inicio, data_final)

    with localcontext() as ctx:
        ctx.prec = PRECISAO_DECIMAL

        taxa = taxa_efetiva_anual(termos, indicadores)
        fator = fator_composto(taxa, dias)
        rentabilidade_periodo = (fator - 1) * CEM

        principal = termos.valor_investido
        valor_bruto = _centavos(principal * fator)
        ganho = valor_bruto - principal

        perc_iof = aliquota_iof(dias, isento=termos.isento_ir)
        perc_ir = aliquota_ir(dias, isento=termos.isento_ir)

        # IOF sai primeiro; o IR incide sobre o ganho já líquido de IOF
        iof = _centavos(ganho * perc_iof / CEM) if ganho > ZERO else _centavos(ZERO)
        imposto_renda = _centavos((ganho - iof) * perc_ir / CEM) if ganho > ZERO else _centavos(ZERO)

        taxas_anuais = termos.taxa_administracao + termos.taxa_custodia
        custo_fixo = principal * taxas_anuais / CEM * Decimal(dias) / Decimal(BASE_DIAS_ANO)
        outras_taxas = _centavos(custo_fixo + custo_performance(termos, indicadores, valor_bruto, dias))

        valor_liquido = valor_bruto - imposto_renda - iof - outras_taxas
        limitado = False
        if valor_liquido < ZERO and limitar_liquido_negativo:
            valor_liquido = _centavos(ZERO)
            limitado = True

        rentabilidade_anualizada, indefinida = anualizar(rentabilidade_periodo, dias)
        rentabilidade_liquida = (valor_liquido - principal) / principal * CEM

        return ResultadoRendimento(
            valor_investido=principal,
            valor_bruto=valor_bruto,
            imposto_renda=imposto_renda,
            iof=iof,
            outras_taxas=outras_taxas,
            valor_liquido=valor_liquido,
            rentabilidade_periodo=_percentual(rentabilidade_periodo),
            rentabilidade_anualizada=_percentual(rentabilidade_anualizada),
            rentabilidade_liquida_periodo=_percentual(rentabilidade_liquida),
            taxa_efetiva_anual=_percentual(taxa),
            aliquota_ir=perc_ir,
            aliquota_iof=perc_iof,
            dias_corridos=dias,
            data_avaliacao=data_final,
            anualizacao_indefinida=indefinida,
            valor_liquido_limitado=limitado,
        )
