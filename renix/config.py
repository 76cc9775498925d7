import os
from decimal import Decimal

# Configuração de diretórios
LOG_DIR = os.getenv("RENIX_LOG_DIR", "logs")
LOG_FILE = os.path.join(LOG_DIR, "app.log")
LOG_LEVEL = os.getenv("RENIX_LOG_LEVEL", "INFO").upper()

# Armazenamento de investimentos e dashboards
DADOS_FILE = os.getenv("RENIX_DADOS_FILE", "renix_dados.json")
DADOS_BACKUP_DIR = os.getenv("RENIX_BACKUP_DIR", "backups")
MAX_DIAS_BACKUP = 30

# API SGS do Banco Central (séries em % a.a., exceto IPCA mensal)
SGS_API_URL = "https://api.bcb.gov.br/dados/serie/bcdata.sgs.{codigo}/dados/ultimos/{n}?formato=json"
SGS_SELIC_OVERNIGHT = 1178
SGS_CDI_OVERNIGHT = 4389
SGS_IPCA_MENSAL = 433
SGS_TIMEOUT = 10

# Precisão dos cálculos
PRECISAO_DECIMAL = 34
QUANTIZACAO_VALOR = Decimal("0.01")
QUANTIZACAO_PERCENTUAL = Decimal("0.000001")
BASE_DIAS_ANO = 365

# Dashboard
DIAS_ALERTA_VENCIMENTO = int(os.getenv("RENIX_DIAS_ALERTA_VENCIMENTO", "30"))
LIMITAR_LIQUIDO_NEGATIVO = os.getenv("RENIX_LIMITAR_LIQUIDO_NEGATIVO", "0") == "1"
