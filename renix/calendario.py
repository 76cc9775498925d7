from datetime import datetime, date
from renix.erros import IntervaloInvalidoError


def _como_data(valor):
    if isinstance(valor, datetime):
        return valor
    if isinstance(valor, date):
        return datetime(valor.year, valor.month, valor.day)
    raise TypeError(f"Esperado date ou datetime, recebido {type(valor).__name__}")


def dias_corridos(inicio, fim):
    """
    Calcula os dias corridos entre duas datas, descartando frações de dia.

    Args:
        inicio (datetime.date | datetime.datetime): Data inicial
        fim (datetime.date | datetime.datetime): Data final

    Returns:
        int: Número inteiro de dias corridos

    Raises:
        IntervaloInvalidoError: Se a data final for anterior à inicial
    """
    inicio_dt = _como_data(inicio)
    fim_dt = _como_data(fim)
    if fim_dt < inicio_dt:
        raise IntervaloInvalidoError(f"Data final {fim} anterior à data inicial {inicio}")
    return (fim_dt - inicio_dt).days


def esta_vencido(vencimento, data_ref):
    """Retorna True se data_ref for igual ou posterior ao vencimento"""
    return _como_data(data_ref) >= _como_data(vencimento)
