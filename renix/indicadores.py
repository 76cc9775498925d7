import requests
from decimal import Decimal

from renix.config import (
    SGS_API_URL,
    SGS_CDI_OVERNIGHT,
    SGS_IPCA_MENSAL,
    SGS_SELIC_OVERNIGHT,
    SGS_TIMEOUT,
)
from renix.erros import IndicadoresIndisponiveisError
from renix.logger import logger
from renix.rendimento import IndicadoresMercado


def fetch_sgs_series(codigo, n=1):
    """
    Busca os últimos n valores de uma série do SGS (Banco Central).

    Args:
        codigo (int): Código da série no SGS
        n (int): Quantidade de observações

    Returns:
        list: Lista de tuplas (data 'dd/mm/aaaa', valor Decimal), da mais antiga para a mais recente

    Raises:
        IndicadoresIndisponiveisError: Em falha de rede, status HTTP de erro ou resposta vazia
    """
    url = SGS_API_URL.format(codigo=codigo, n=n)
    logger.info(f"Buscando série {codigo} no SGS ({n} observações)")
    try:
        logger.debug(f"Enviando requisição para {url}")
        response = requests.get(url, timeout=SGS_TIMEOUT)
        logger.debug(f"Status code da resposta: {response.status_code}")
        response.raise_for_status()
        dados = response.json()
    except requests.exceptions.ConnectionError as e:
        logger.error(f"Erro de conexão ao buscar a série {codigo}: {e}")
        raise IndicadoresIndisponiveisError(f"Erro de conexão ao buscar a série {codigo}") from e
    except requests.exceptions.Timeout as e:
        logger.error(f"Timeout ao buscar a série {codigo}: {e}")
        raise IndicadoresIndisponiveisError(f"Timeout ao buscar a série {codigo}") from e
    except requests.exceptions.RequestException as e:
        logger.error(f"Erro na requisição ao buscar a série {codigo}: {e}")
        raise IndicadoresIndisponiveisError(f"Erro na requisição ao buscar a série {codigo}") from e
    except ValueError as e:
        logger.error(f"Resposta inválida do SGS para a série {codigo}: {e}")
        raise IndicadoresIndisponiveisError(f"Resposta inválida do SGS para a série {codigo}") from e

    if not dados:
        logger.warning(f"Série {codigo} sem dados no SGS")
        raise IndicadoresIndisponiveisError(f"Série {codigo} sem dados")

    try:
        return [(item["data"], Decimal(str(item["valor"]).replace(",", "."))) for item in dados]
    except (KeyError, ArithmeticError) as e:
        logger.error(f"Registro malformado na série {codigo}: {e}")
        raise IndicadoresIndisponiveisError(f"Registro malformado na série {codigo}") from e


def ipca_12_meses():
    """
    IPCA acumulado em 12 meses (% a.a.): produto de (1 + ipca_mensal/100) dos últimos 12 meses.

    Returns:
        tuple: (ipca_anual Decimal, data da última observação)
    """
    observacoes = fetch_sgs_series(SGS_IPCA_MENSAL, 12)
    fator = Decimal("1")
    for _, mensal in observacoes:
        fator *= 1 + mensal / 100
    return ((fator - 1) * 100).quantize(Decimal("0.0001")), observacoes[-1][0]


def fetch_indicadores_mercado():
    """
    Obtém SELIC, CDI e IPCA atuais para alimentar o cálculo de rendimento.

    Returns:
        IndicadoresMercado: Indicadores com a data de referência do CDI

    Raises:
        IndicadoresIndisponiveisError: Se qualquer série estiver indisponível
    """
    data_selic, selic = fetch_sgs_series(SGS_SELIC_OVERNIGHT)[-1]
    data_cdi, cdi = fetch_sgs_series(SGS_CDI_OVERNIGHT)[-1]
    ipca, data_ipca = ipca_12_meses()

    logger.info(f"Indicadores obtidos: SELIC {selic}% ({data_selic}), CDI {cdi}% ({data_cdi}), "
                f"IPCA 12m {ipca:.2f}% ({data_ipca})")
    return IndicadoresMercado(selic=selic, cdi=cdi, ipca=ipca, data_referencia=data_cdi)
