from renix import create_app
from renix.logger import logger

app = create_app()

if __name__ == '__main__':
    logger.info("Iniciando a API Renix na porta 5001")
    app.run(host='0.0.0.0', port=5001, debug=True)
