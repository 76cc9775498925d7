from dataclasses import dataclass
from decimal import Decimal, ROUND_DOWN
from typing import Optional, Tuple, Dict

from renix.erros import IntervaloInvalidoError

# Prazo a partir do qual o IOF deixa de incidir
DIAS_ISENCAO_IOF = 30


@dataclass(frozen=True)
class FaixaIR:
    dias_min: int
    dias_max: Optional[int]  # None = sem limite superior
    aliquota: Decimal        # percentual

    def contem(self, dias: int) -> bool:
        if dias < self.dias_min:
            return False
        return self.dias_max is None or dias <= self.dias_max


# Tabela regressiva de IR para renda fixa (Lei 11.033/2004, art. 1º)
TABELA_IR: Tuple[FaixaIR, ...] = (
    FaixaIR(0, 180, Decimal("22.5")),
    FaixaIR(181, 360, Decimal("20")),
    FaixaIR(361, 720, Decimal("17.5")),
    FaixaIR(721, None, Decimal("15")),
)


def validar_tabela_ir(tabela):
    """
    Garante que as faixas cobrem [0, ∞) sem lacunas nem sobreposições e que a
    alíquota é estritamente decrescente.

    Raises:
        ValueError: Se a tabela violar alguma dessas regras
    """
    if not tabela:
        raise ValueError("Tabela de IR vazia")
    if tabela[0].dias_min != 0:
        raise ValueError("A primeira faixa de IR deve começar no dia 0")
    for anterior, atual in zip(tabela, tabela[1:]):
        if anterior.dias_max is None:
            raise ValueError("Apenas a última faixa de IR pode ser ilimitada")
        if atual.dias_min != anterior.dias_max + 1:
            raise ValueError(f"Lacuna ou sobreposição entre as faixas {anterior} e {atual}")
        if atual.aliquota >= anterior.aliquota:
            raise ValueError(f"Alíquota não decrescente entre as faixas {anterior} e {atual}")
    if tabela[-1].dias_max is not None:
        raise ValueError("A última faixa de IR deve ser ilimitada")


def _montar_tabela_iof() -> Dict[int, Decimal]:
    # (30 - d) / 30 * 100 truncado para percentual inteiro: 96, 93, 90, 86, ...
    tabela = {}
    for dia in range(DIAS_ISENCAO_IOF):
        percentual = Decimal(DIAS_ISENCAO_IOF - dia) / Decimal(DIAS_ISENCAO_IOF) * 100
        tabela[dia] = percentual.quantize(Decimal("1"), rounding=ROUND_DOWN)
    return tabela


validar_tabela_ir(TABELA_IR)

# Tabela regressiva do IOF (apenas para os primeiros 29 dias)
TABELA_IOF = _montar_tabela_iof()


def aliquota_ir(dias, isento=False):
    """
    Alíquota de IR (%) conforme o prazo da aplicação.

    Args:
        dias (int): Dias corridos da aplicação
        isento (bool): Se o produto é isento de IR (LCI/LCA); informado por quem chama

    Returns:
        Decimal: Alíquota percentual (ex.: 22.5)
    """
    if dias < 0:
        raise IntervaloInvalidoError(f"Prazo negativo: {dias} dias")
    if isento:
        return Decimal("0")
    for faixa in TABELA_IR:
        if faixa.contem(dias):
            return faixa.aliquota
    # Inalcançável com uma tabela validada
    raise ValueError(f"Nenhuma faixa de IR para {dias} dias")


def aliquota_iof(dias, isento=False):
    """
    Alíquota de IOF (%) sobre o rendimento, regressiva até o 30º dia.

    Args:
        dias (int): Dias corridos da aplicação
        isento (bool): Se o produto é isento (LCI/LCA); a mesma marcação usada no IR

    Returns:
        Decimal: Alíquota percentual (ex.: 96 no primeiro dia, 0 a partir do 30º)
    """
    if dias < 0:
        raise IntervaloInvalidoError(f"Prazo negativo: {dias} dias")
    if isento:
        return Decimal("0")
    return TABELA_IOF.get(dias, Decimal("0"))
