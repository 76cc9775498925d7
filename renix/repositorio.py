import os
import json
import glob
import uuid
import threading
from dataclasses import replace
from datetime import datetime, timedelta

from renix import config
from renix.dashboard import DashboardSnapshot
from renix.erros import DashboardNaoEncontradoError, InvestimentoNaoEncontradoError
from renix.logger import logger
from renix.rendimento import InvestimentoCadastrado

_lock = threading.Lock()

# Coleções mantidas no mesmo arquivo JSON
COLECOES = ("investimentos", "dashboards")


def _armazenamento_vazio():
    return {colecao: {} for colecao in COLECOES}


def load_dados():
    """
    Carrega investimentos e dashboards do arquivo JSON.
    Se o arquivo não existir ou estiver corrompido, retorna um armazenamento vazio.

    Returns:
        dict: Uma chave por coleção, cada uma mapeando id -> registro serializado
    """
    arquivo = config.DADOS_FILE
    if not os.path.exists(arquivo):
        logger.info(f"Arquivo de dados não encontrado: {arquivo}")
        return _armazenamento_vazio()

    logger.debug(f"Carregando dados do arquivo: {arquivo}")
    with open(arquivo, "r", encoding="utf-8") as f:
        try:
            dados = json.load(f)
        except json.JSONDecodeError as e:
            logger.error(f"Erro ao decodificar o arquivo de dados: {e}")
            dados = None

    valido = isinstance(dados, dict) and all(isinstance(dados.get(c, {}), dict) for c in COLECOES)
    if not valido:
        logger.warning("Criando um novo armazenamento vazio devido a erro no arquivo existente")
        # Faz backup do arquivo corrompido
        os.makedirs(config.DADOS_BACKUP_DIR, exist_ok=True)
        backup_file = os.path.join(
            config.DADOS_BACKUP_DIR,
            f"dados_corrupto_{datetime.now().strftime('%Y%m%d%H%M%S')}.json"
        )
        os.replace(arquivo, backup_file)
        logger.info(f"Backup do arquivo de dados corrompido criado: {backup_file}")
        return _armazenamento_vazio()

    # Arquivos antigos podem não ter todas as coleções
    for colecao in COLECOES:
        dados.setdefault(colecao, {})

    logger.debug(f"Dados carregados: {len(dados['investimentos'])} investimentos, "
                 f"{len(dados['dashboards'])} dashboards")
    return dados


def clean_old_backups(max_days=None):
    """
    Remove backups diários antigos, mantendo apenas os últimos 'max_days' dias.

    Returns:
        int: Número de arquivos removidos
    """
    if max_days is None:
        max_days = config.MAX_DIAS_BACKUP
    if not os.path.exists(config.DADOS_BACKUP_DIR):
        return 0

    data_limite = (datetime.now() - timedelta(days=max_days)).strftime('%Y%m%d')
    arquivos_removidos = 0

    for arquivo in glob.glob(os.path.join(config.DADOS_BACKUP_DIR, "dados_backup_*.json")):
        # Formato: dados_backup_YYYYMMDD.json
        data_arquivo = os.path.basename(arquivo).split('_')[2].split('.')[0]
        if data_arquivo < data_limite:
            os.remove(arquivo)
            logger.debug(f"Backup antigo removido: {arquivo}")
            arquivos_removidos += 1

    if arquivos_removidos > 0:
        logger.info(f"Limpeza de backups concluída: {arquivos_removidos} arquivos antigos removidos")

    return arquivos_removidos


def save_dados(dados):
    """
    Salva os dados em JSON criando antes um backup diário do arquivo atual.
    A escrita passa por um arquivo temporário para não corromper o original.

    Args:
        dados (dict): Dados com uma chave por coleção
    """
    arquivo = config.DADOS_FILE
    temp_file = f"{arquivo}.tmp"
    with open(temp_file, "w", encoding="utf-8") as f:
        json.dump(dados, f, ensure_ascii=False, indent=4)

    if os.path.exists(arquivo):
        os.makedirs(config.DADOS_BACKUP_DIR, exist_ok=True)

        # Apenas um backup por dia
        data_atual = datetime.now().strftime('%Y%m%d')
        backup_diario = os.path.join(config.DADOS_BACKUP_DIR, f"dados_backup_{data_atual}.json")
        if not os.path.exists(backup_diario):
            with open(arquivo, 'r', encoding="utf-8") as orig_file, \
                    open(backup_diario, 'w', encoding="utf-8") as backup_file:
                backup_file.write(orig_file.read())
            logger.info(f"Backup diário dos dados criado: {backup_diario}")
            clean_old_backups()
        else:
            logger.debug(f"Backup diário já existe para hoje: {backup_diario}")

    os.replace(temp_file, arquivo)
    logger.info("Dados salvos com sucesso: " +
                ", ".join(f"{len(dados.get(c, {}))} {c}" for c in COLECOES))


def _pertence(registro, usuario_id):
    # Sem usuário informado não há verificação de dono
    return usuario_id is None or registro.get("usuario_id") == usuario_id


def _com_identificacao(entidade):
    return replace(
        entidade,
        id=uuid.uuid4().hex,
        criado_em=datetime.now().isoformat(timespec="seconds"),
    )


def _listar(colecao, usuario_id):
    with _lock:
        dados = load_dados()
    registros = [r for r in dados[colecao].values() if _pertence(r, usuario_id)]
    registros.sort(key=lambda r: r.get("criado_em") or "")
    logger.debug(f"{len(registros)} {colecao} listados (usuário: {usuario_id})")
    return registros


def salvar_investimento(investimento):
    """
    Cadastra os termos de um investimento, atribuindo id e data de criação.

    Args:
        investimento (InvestimentoCadastrado): Investimento ainda sem id

    Returns:
        InvestimentoCadastrado: Cópia com id e criado_em preenchidos
    """
    armazenado = _com_identificacao(investimento)
    with _lock:
        dados = load_dados()
        dados["investimentos"][armazenado.id] = armazenado.para_dict()
        save_dados(dados)
    logger.info(f"Investimento {armazenado.id} salvo para o usuário {armazenado.usuario_id}")
    return armazenado


def buscar_investimento(investimento_id, usuario_id=None):
    """
    Busca um investimento pelo id.

    Args:
        investimento_id (str): Id do investimento
        usuario_id (str, optional): Se informado, o investimento precisa pertencer a esse usuário

    Raises:
        InvestimentoNaoEncontradoError: Se não houver investimento com esse id para o usuário
    """
    with _lock:
        dados = load_dados()
    registro = dados["investimentos"].get(investimento_id)
    if registro is None or not _pertence(registro, usuario_id):
        logger.info(f"Investimento não encontrado: {investimento_id} (usuário: {usuario_id})")
        raise InvestimentoNaoEncontradoError(investimento_id)
    return InvestimentoCadastrado.de_dict(registro)


def listar_investimentos(usuario_id=None):
    return [InvestimentoCadastrado.de_dict(r) for r in _listar("investimentos", usuario_id)]


def remover_investimento(investimento_id, usuario_id=None):
    """
    Remove um investimento e os dashboards gerados a partir dele.

    Returns:
        int: Número de dashboards removidos junto com o investimento

    Raises:
        InvestimentoNaoEncontradoError: Se não houver investimento com esse id para o usuário
    """
    with _lock:
        dados = load_dados()
        registro = dados["investimentos"].get(investimento_id)
        if registro is None or not _pertence(registro, usuario_id):
            logger.info(f"Investimento não encontrado para exclusão: {investimento_id}")
            raise InvestimentoNaoEncontradoError(investimento_id)
        del dados["investimentos"][investimento_id]
        associados = [d_id for d_id, d in dados["dashboards"].items()
                      if d.get("investimento_id") == investimento_id]
        for dashboard_id in associados:
            del dados["dashboards"][dashboard_id]
        save_dados(dados)
    logger.info(f"Investimento removido com sucesso: {investimento_id} ({len(associados)} dashboards associados)")
    return len(associados)


def salvar_dashboard(snapshot):
    """
    Armazena um novo dashboard, atribuindo id e data de criação.

    Args:
        snapshot (DashboardSnapshot): Dashboard ainda sem id

    Returns:
        DashboardSnapshot: Cópia do dashboard com id e criado_em preenchidos
    """
    armazenado = _com_identificacao(snapshot)
    with _lock:
        dados = load_dados()
        dados["dashboards"][armazenado.id] = armazenado.para_dict()
        save_dados(dados)
    logger.info(f"Dashboard {armazenado.id} salvo para o usuário {armazenado.usuario_id}")
    return armazenado


def buscar_dashboard(dashboard_id, usuario_id=None):
    """
    Busca um dashboard pelo id.

    Args:
        dashboard_id (str): Id do dashboard
        usuario_id (str, optional): Se informado, o dashboard precisa pertencer a esse usuário

    Raises:
        DashboardNaoEncontradoError: Se não houver dashboard com esse id para o usuário
    """
    with _lock:
        dados = load_dados()
    registro = dados["dashboards"].get(dashboard_id)
    if registro is None or not _pertence(registro, usuario_id):
        logger.info(f"Dashboard não encontrado: {dashboard_id} (usuário: {usuario_id})")
        raise DashboardNaoEncontradoError(dashboard_id)
    return DashboardSnapshot.de_dict(registro)


def listar_dashboards(usuario_id=None):
    """
    Lista os dashboards armazenados, do mais antigo ao mais recente.

    Args:
        usuario_id (str, optional): Se informado, apenas os dashboards desse usuário

    Returns:
        list: Lista de DashboardSnapshot
    """
    return [DashboardSnapshot.de_dict(r) for r in _listar("dashboards", usuario_id)]


def remover_dashboard(dashboard_id, usuario_id=None):
    """
    Remove um dashboard pelo id.

    Raises:
        DashboardNaoEncontradoError: Se não houver dashboard com esse id para o usuário
    """
    with _lock:
        dados = load_dados()
        registro = dados["dashboards"].get(dashboard_id)
        if registro is None or not _pertence(registro, usuario_id):
            logger.info(f"Dashboard não encontrado para exclusão: {dashboard_id}")
            raise DashboardNaoEncontradoError(dashboard_id)
        del dados["dashboards"][dashboard_id]
        save_dados(dados)
    logger.info(f"Dashboard removido com sucesso: {dashboard_id}")
