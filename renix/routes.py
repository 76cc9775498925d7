from datetime import datetime
from flask import Blueprint, request, jsonify, Response

from renix.dashboard import construir_dashboard, gerar_evolucao
from renix.erros import (
    DashboardNaoEncontradoError,
    DataAvaliacaoInvalidaError,
    IndicadoresIndisponiveisError,
    IntervaloInvalidoError,
    InvestimentoNaoEncontradoError,
    TermosInvalidosError,
)
from renix.indicadores import fetch_indicadores_mercado
from renix.logger import logger
from renix.relatorio import gerar_pdf_dashboard
from renix.rendimento import (
    TAXA_ANUAL_OPCIONAL,
    IndicadoresMercado,
    InvestimentoCadastrado,
    TermosInvestimento,
    TipoInvestimento,
    TipoTaxa,
    calcular_rendimento,
    validar_termos,
)
from renix.repositorio import (
    buscar_dashboard,
    buscar_investimento,
    listar_dashboards,
    listar_investimentos,
    remover_dashboard,
    remover_investimento,
    salvar_dashboard,
    salvar_investimento,
)
from renix.utils import parse_date, safe_decimal, safe_int

# Cria o blueprint para as rotas
api_bp = Blueprint('api', __name__)

ERROS_CALCULO = (TermosInvalidosError, IntervaloInvalidoError, DataAvaliacaoInvalidaError)


class PayloadInvalidoError(ValueError):
    """Corpo da requisição ausente ou com campos inválidos"""


def _campo_decimal(dados, campo, obrigatorio=True, padrao=None):
    valor = dados.get(campo)
    if valor is None:
        if obrigatorio:
            raise PayloadInvalidoError(f"Parâmetro obrigatório ausente: {campo}")
        return padrao
    convertido = safe_decimal(valor)
    if convertido is None:
        raise PayloadInvalidoError(f"Valor numérico inválido para {campo}: {valor}")
    return convertido


def _campo_data(dados, campo, obrigatorio=True):
    valor = dados.get(campo)
    if valor is None:
        if obrigatorio:
            raise PayloadInvalidoError(f"Parâmetro obrigatório ausente: {campo}")
        return None
    data = parse_date(valor)
    if data is None:
        raise PayloadInvalidoError(f"Formato de data inválido para {campo}. Use YYYY-MM-DD.")
    return data


def _campo_inteiro(dados, campo, padrao):
    valor = dados.get(campo)
    if valor is None:
        return padrao
    convertido = safe_int(valor)
    if convertido is None:
        raise PayloadInvalidoError(f"Valor inteiro inválido para {campo}: {valor}")
    return convertido


def _campo_booleano(dados, campo, padrao=False):
    valor = dados.get(campo, padrao)
    if not isinstance(valor, bool):
        raise PayloadInvalidoError(f"Valor booleano inválido para {campo}: {valor}")
    return valor


def _ler_json():
    dados = request.get_json(silent=True)
    if not isinstance(dados, dict):
        raise PayloadInvalidoError("Corpo da requisição deve ser um objeto JSON")
    return dados


def ler_termos(dados):
    """
    Converte o corpo da requisição em TermosInvestimento.

    Raises:
        PayloadInvalidoError: Campo ausente ou com tipo inválido
    """
    tipo_taxa = dados.get("tipo_taxa", TipoTaxa.PREFIXADO.value)
    if not isinstance(tipo_taxa, str) or tipo_taxa not in TipoTaxa.__members__:
        raise PayloadInvalidoError(f"tipo_taxa inválido: {tipo_taxa}. Use {', '.join(TipoTaxa.__members__)}")
    tipo_investimento = dados.get("tipo_investimento", TipoInvestimento.CDB.value)
    if not isinstance(tipo_investimento, str) or tipo_investimento not in TipoInvestimento.__members__:
        raise PayloadInvalidoError(f"tipo_investimento inválido: {tipo_investimento}")

    return TermosInvestimento(
        valor_investido=_campo_decimal(dados, "valor_investido"),
        data_inicio=_campo_data(dados, "data_inicio"),
        data_vencimento=_campo_data(dados, "data_vencimento"),
        taxa_anual=_campo_decimal(dados, "taxa_anual",
                                  obrigatorio=(TipoTaxa(tipo_taxa) not in TAXA_ANUAL_OPCIONAL)),
        tipo_taxa=TipoTaxa(tipo_taxa),
        percentual_indexador=_campo_decimal(dados, "percentual_indexador", obrigatorio=False),
        liquidez=_campo_inteiro(dados, "liquidez", 1),
        risco=_campo_inteiro(dados, "risco", 1),
        garantia_fgc=_campo_booleano(dados, "garantia_fgc"),
        isento_ir=_campo_booleano(dados, "isento_ir"),
        taxa_administracao=_campo_decimal(dados, "taxa_administracao", obrigatorio=False, padrao=0),
        taxa_custodia=_campo_decimal(dados, "taxa_custodia", obrigatorio=False, padrao=0),
        taxa_performance=_campo_decimal(dados, "taxa_performance", obrigatorio=False, padrao=0),
        benchmark_performance=_campo_decimal(dados, "benchmark_performance", obrigatorio=False),
        tipo_investimento=TipoInvestimento(tipo_investimento),
    )


def ler_indicadores(dados):
    """
    Usa os indicadores enviados no corpo; se ausentes, consulta o SGS.

    Raises:
        PayloadInvalidoError: Indicadores enviados com valores inválidos
        IndicadoresIndisponiveisError: Falha ao consultar o SGS
    """
    indicadores = dados.get("indicadores")
    if indicadores is None:
        logger.info("Indicadores não informados, consultando o SGS")
        return fetch_indicadores_mercado()
    if not isinstance(indicadores, dict):
        raise PayloadInvalidoError("indicadores deve ser um objeto com selic, cdi e ipca")
    return IndicadoresMercado(
        selic=_campo_decimal(indicadores, "selic"),
        cdi=_campo_decimal(indicadores, "cdi"),
        ipca=_campo_decimal(indicadores, "ipca"),
        data_referencia=indicadores.get("data_referencia"),
    )


def _data_avaliacao(dados):
    data = _campo_data(dados, "data_avaliacao", obrigatorio=False)
    return data or datetime.now().date()


def _usuario_autenticado(dados=None):
    # O id do usuário vem do colaborador de autenticação (cabeçalho) ou do corpo
    usuario_id = request.headers.get("X-Usuario-Id")
    if usuario_id is None and dados is not None:
        usuario_id = dados.get("usuario_id")
    return usuario_id


def _erro_calculo(e):
    logger.warning(f"Erro de cálculo: {type(e).__name__}: {e}")
    return jsonify({"erro": str(e), "tipo": type(e).__name__}), 422


@api_bp.route('/ping')
def healthcheck():
    """Endpoint de verificação de saúde da API"""
    return jsonify({"status": "ok", "message": "Service is running"}), 200


@api_bp.route('/indicadores', methods=['GET'])
def indicadores_endpoint():
    """Retorna SELIC, CDI e IPCA atuais consultados no SGS"""
    logger.info(f"Requisição de indicadores recebida de {request.remote_addr}")
    try:
        indicadores = fetch_indicadores_mercado()
    except IndicadoresIndisponiveisError as e:
        logger.error(f"Indicadores indisponíveis: {e}")
        return jsonify({"erro": str(e)}), 503
    return jsonify(indicadores.para_dict())


@api_bp.route('/rendimento', methods=['POST'])
def rendimento_endpoint():
    """
    Calcula o rendimento de um investimento sem armazenar o resultado.

    Corpo JSON: termos do investimento, data_avaliacao (opcional, padrão hoje)
    e indicadores (opcional, padrão SGS).
    """
    logger.info(f"Requisição de cálculo de rendimento recebida de {request.remote_addr}")
    try:
        dados = _ler_json()
        termos = ler_termos(dados)
        data_avaliacao = _data_avaliacao(dados)
        indicadores = ler_indicadores(dados)
        resultado = calcular_rendimento(termos, indicadores, data_avaliacao)
    except PayloadInvalidoError as e:
        logger.warning(f"Erro de validação: {e}")
        return jsonify({"erro": str(e)}), 400
    except ERROS_CALCULO as e:
        return _erro_calculo(e)
    except IndicadoresIndisponiveisError as e:
        logger.error(f"Indicadores indisponíveis: {e}")
        return jsonify({"erro": str(e)}), 503

    logger.info(f"Rendimento calculado: bruto R$ {resultado.valor_bruto}, líquido R$ {resultado.valor_liquido}, "
                f"{resultado.dias_corridos} dias")
    return jsonify({
        "termos": termos.para_dict(),
        "indicadores_mercado": indicadores.para_dict(),
        "rendimento": resultado.para_dict(),
    })


def _limite_vencimento(dados):
    limite = _campo_inteiro(dados, "limite_vencimento_dias", None)
    if limite is not None and limite < 0:
        raise PayloadInvalidoError("limite_vencimento_dias não pode ser negativo")
    return limite


@api_bp.route('/dashboards', methods=['POST'])
def criar_dashboard_endpoint():
    """Avalia o investimento, monta o dashboard e o armazena"""
    logger.info(f"Requisição de criação de dashboard recebida de {request.remote_addr}")
    try:
        dados = _ler_json()
        termos = ler_termos(dados)
        data_avaliacao = _data_avaliacao(dados)
        limite = _limite_vencimento(dados)
        indicadores = ler_indicadores(dados)
        resultado = calcular_rendimento(termos, indicadores, data_avaliacao)
        snapshot = construir_dashboard(
            termos,
            indicadores,
            resultado,
            usuario_id=_usuario_autenticado(dados),
            banco_id=dados.get("banco_id"),
            nome_banco=dados.get("nome_banco"),
            limite_vencimento_dias=limite,
        )
    except PayloadInvalidoError as e:
        logger.warning(f"Erro de validação: {e}")
        return jsonify({"erro": str(e)}), 400
    except ERROS_CALCULO as e:
        return _erro_calculo(e)
    except IndicadoresIndisponiveisError as e:
        logger.error(f"Indicadores indisponíveis: {e}")
        return jsonify({"erro": str(e)}), 503

    armazenado = salvar_dashboard(snapshot)
    if armazenado.alertas:
        logger.info(f"Dashboard {armazenado.id} criado com alertas: {'; '.join(armazenado.alertas)}")
    return jsonify(armazenado.para_dict()), 201


@api_bp.route('/dashboards', methods=['GET'])
def listar_dashboards_endpoint():
    """Lista os dashboards, filtrando pelo usuário quando informado"""
    usuario_id = request.args.get('usuario_id') or _usuario_autenticado()
    dashboards = listar_dashboards(usuario_id)
    logger.info(f"{len(dashboards)} dashboards retornados (usuário: {usuario_id})")
    return jsonify([d.para_dict() for d in dashboards])


@api_bp.route('/dashboards/<dashboard_id>', methods=['GET'])
def buscar_dashboard_endpoint(dashboard_id):
    try:
        snapshot = buscar_dashboard(dashboard_id, _usuario_autenticado())
    except DashboardNaoEncontradoError as e:
        return jsonify({"erro": str(e)}), 404
    return jsonify(snapshot.para_dict())


@api_bp.route('/dashboards/<dashboard_id>/evolucao', methods=['GET'])
def evolucao_dashboard_endpoint(dashboard_id):
    """Série mensal de valores bruto e líquido até o vencimento"""
    try:
        snapshot = buscar_dashboard(dashboard_id, _usuario_autenticado())
    except DashboardNaoEncontradoError as e:
        return jsonify({"erro": str(e)}), 404
    evolucao = gerar_evolucao(snapshot.termos, snapshot.indicadores_mercado)
    return jsonify(evolucao.to_dict(orient="records"))


@api_bp.route('/dashboards/<dashboard_id>/pdf', methods=['GET'])
def pdf_dashboard_endpoint(dashboard_id):
    """Gera o PDF do dashboard como anexo"""
    logger.info(f"Requisição de PDF do dashboard {dashboard_id}")
    try:
        snapshot = buscar_dashboard(dashboard_id, _usuario_autenticado())
    except DashboardNaoEncontradoError as e:
        return jsonify({"erro": str(e)}), 404

    conteudo = gerar_pdf_dashboard(snapshot)
    return Response(
        conteudo,
        mimetype="application/pdf",
        headers={"Content-Disposition": f"attachment; filename=dashboard-{dashboard_id}.pdf"},
    )


@api_bp.route('/dashboards/<dashboard_id>', methods=['DELETE'])
def remover_dashboard_endpoint(dashboard_id):
    try:
        remover_dashboard(dashboard_id, _usuario_autenticado())
    except DashboardNaoEncontradoError as e:
        return jsonify({"erro": str(e)}), 404
    return "", 204


@api_bp.route('/investimentos', methods=['POST'])
def criar_investimento_endpoint():
    """
    Cadastra os termos de um investimento para reavaliações futuras.

    Corpo JSON: termos do investimento e, opcionalmente, banco_id, nome_banco e titulo.
    """
    logger.info(f"Requisição de cadastro de investimento recebida de {request.remote_addr}")
    try:
        dados = _ler_json()
        termos = ler_termos(dados)
        validar_termos(termos)
    except PayloadInvalidoError as e:
        logger.warning(f"Erro de validação: {e}")
        return jsonify({"erro": str(e)}), 400
    except TermosInvalidosError as e:
        return _erro_calculo(e)

    armazenado = salvar_investimento(InvestimentoCadastrado(
        termos=termos,
        usuario_id=_usuario_autenticado(dados),
        banco_id=dados.get("banco_id"),
        nome_banco=dados.get("nome_banco"),
        titulo=dados.get("titulo"),
    ))
    return jsonify(armazenado.para_dict()), 201


@api_bp.route('/investimentos', methods=['GET'])
def listar_investimentos_endpoint():
    usuario_id = request.args.get('usuario_id') or _usuario_autenticado()
    investimentos = listar_investimentos(usuario_id)
    logger.info(f"{len(investimentos)} investimentos retornados (usuário: {usuario_id})")
    return jsonify([i.para_dict() for i in investimentos])


@api_bp.route('/investimentos/<investimento_id>', methods=['GET'])
def buscar_investimento_endpoint(investimento_id):
    try:
        investimento = buscar_investimento(investimento_id, _usuario_autenticado())
    except InvestimentoNaoEncontradoError as e:
        return jsonify({"erro": str(e)}), 404
    return jsonify(investimento.para_dict())


@api_bp.route('/investimentos/<investimento_id>', methods=['DELETE'])
def remover_investimento_endpoint(investimento_id):
    """Remove o investimento e os dashboards gerados a partir dele"""
    try:
        remover_investimento(investimento_id, _usuario_autenticado())
    except InvestimentoNaoEncontradoError as e:
        return jsonify({"erro": str(e)}), 404
    return "", 204


@api_bp.route('/investimentos/<investimento_id>/dashboards', methods=['POST'])
def reavaliar_investimento_endpoint(investimento_id):
    """
    Reavalia um investimento cadastrado e armazena um novo dashboard.

    Corpo JSON opcional: data_avaliacao, indicadores e limite_vencimento_dias.
    """
    logger.info(f"Requisição de reavaliação do investimento {investimento_id}")
    try:
        investimento = buscar_investimento(investimento_id, _usuario_autenticado())
    except InvestimentoNaoEncontradoError as e:
        return jsonify({"erro": str(e)}), 404

    try:
        dados = request.get_json(silent=True)
        if dados is None:
            dados = {}
        if not isinstance(dados, dict):
            raise PayloadInvalidoError("Corpo da requisição deve ser um objeto JSON")
        data_avaliacao = _data_avaliacao(dados)
        limite = _limite_vencimento(dados)
        indicadores = ler_indicadores(dados)
        resultado = calcular_rendimento(investimento.termos, indicadores, data_avaliacao)
        snapshot = construir_dashboard(
            investimento.termos,
            indicadores,
            resultado,
            usuario_id=investimento.usuario_id,
            banco_id=investimento.banco_id,
            nome_banco=investimento.nome_banco,
            limite_vencimento_dias=limite,
            investimento_id=investimento.id,
        )
    except PayloadInvalidoError as e:
        logger.warning(f"Erro de validação: {e}")
        return jsonify({"erro": str(e)}), 400
    except ERROS_CALCULO as e:
        return _erro_calculo(e)
    except IndicadoresIndisponiveisError as e:
        logger.error(f"Indicadores indisponíveis: {e}")
        return jsonify({"erro": str(e)}), 503

    armazenado = salvar_dashboard(snapshot)
    logger.info(f"Dashboard {armazenado.id} gerado a partir do investimento {investimento_id}")
    return jsonify(armazenado.para_dict()), 201
