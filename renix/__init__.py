from flask import Flask, jsonify
from flask_cors import CORS
from renix.logger import logger
from renix.routes import api_bp

def create_app(test_config=None):
    """
    Cria e configura a aplicação Flask da API Renix

    Args:
        test_config (dict, optional): Configurações que sobrescrevem as padrão

    Returns:
        Flask: Aplicação Flask configurada
    """
    app = Flask(__name__)
    if test_config:
        app.config.update(test_config)
    # Respostas com acentuação legível
    app.json.ensure_ascii = False
    CORS(app)

    app.register_blueprint(api_bp)

    @app.errorhandler(404)
    def rota_nao_encontrada(e):
        return jsonify({"erro": "Rota não encontrada"}), 404

    @app.errorhandler(405)
    def metodo_nao_permitido(e):
        return jsonify({"erro": "Método não permitido"}), 405

    logger.info("Aplicação Renix criada")
    return app
