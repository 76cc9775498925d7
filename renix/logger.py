import os
import logging
from renix.config import LOG_DIR, LOG_FILE, LOG_LEVEL

# Criando diretório de logs se não existir
os.makedirs(LOG_DIR, exist_ok=True)

logging.basicConfig(
    filename=LOG_FILE,
    level=getattr(logging, LOG_LEVEL, logging.INFO),
    format="%(asctime)s - %(levelname)s - %(name)s - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S"
)

# matplotlib registra detalhes de fontes em DEBUG
logging.getLogger("matplotlib").setLevel(logging.WARNING)

logger = logging.getLogger("renix")
