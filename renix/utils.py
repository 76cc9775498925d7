from datetime import datetime, date
from decimal import Decimal, InvalidOperation
from renix.logger import logger

def parse_date(date_str):
    """
    Converte uma string de data para um objeto datetime.date.

    Args:
        date_str (str): String de data no formato YYYY-MM-DD

    Returns:
        datetime.date: Objeto de data ou None se o formato for inválido
    """
    try:
        # Aceita objetos date já convertidos
        if isinstance(date_str, date) and not isinstance(date_str, datetime):
            return date_str
        if not isinstance(date_str, str):
            logger.warning(f"Erro ao converter data: valor não é uma string - {date_str}")
            return None

        return datetime.strptime(date_str, '%Y-%m-%d').date()
    except ValueError as e:
        logger.warning(f"Erro ao converter data '{date_str}': {e}")
        return None

def safe_decimal(value):
    """
    Converte um valor numérico ou string para Decimal de forma segura.
    Floats passam por str() para não herdar o erro de representação binária.

    Args:
        value (str | int | float | Decimal): Valor para converter

    Returns:
        Decimal: Valor convertido ou None se inválido
    """
    if isinstance(value, bool):
        logger.warning(f"Erro ao converter para Decimal: valor booleano '{value}'")
        return None
    try:
        if isinstance(value, Decimal):
            resultado = value
        elif isinstance(value, (int, float)):
            resultado = Decimal(str(value))
        elif isinstance(value, str):
            resultado = Decimal(value.strip().replace(",", "."))
        else:
            logger.warning(f"Erro ao converter para Decimal: tipo não suportado - {value!r}")
            return None
    except InvalidOperation as e:
        logger.warning(f"Erro ao converter para Decimal '{value}': {e}")
        return None

    if not resultado.is_finite():
        logger.warning(f"Erro ao converter para Decimal: valor não finito '{value}'")
        return None
    return resultado

def safe_int(value):
    """
    Converte um valor para int de forma segura, rejeitando frações.

    Returns:
        int: Valor convertido ou None se inválido
    """
    numero = safe_decimal(value)
    if numero is None or numero != numero.to_integral_value():
        logger.warning(f"Erro ao converter para inteiro '{value}'")
        return None
    return int(numero)
