import io
from datetime import datetime

import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt

from reportlab.lib.pagesizes import A4
from reportlab.pdfgen import canvas
from reportlab.lib.units import cm
from reportlab.lib.utils import ImageReader

from renix.dashboard import gerar_evolucao
from renix.logger import logger

CORES = {
    "primaria": "#047857",
    "secundaria": "#059669",
    "texto": "#1F2937",
    "texto_claro": "#6B7280",
    "fundo": "#F0FDF4",
}


def formatar_moeda(valor):
    """R$ 1.234,56"""
    texto = f"{float(valor):,.2f}"
    return "R$ " + texto.replace(",", "X").replace(".", ",").replace("X", ".")


def formatar_percentual(valor, casas=2):
    return f"{float(valor):.{casas}f}%".replace(".", ",")


def grafico_evolucao_png(evolucao):
    """
    Gera o gráfico de evolução (bruto x líquido) em PNG.

    Args:
        evolucao (pandas.DataFrame): Saída de gerar_evolucao

    Returns:
        bytes: Imagem PNG
    """
    fig, ax = plt.subplots(figsize=(8, 4))
    ax.plot(evolucao["data"], evolucao["valor_bruto"], label="Valor bruto", color=CORES["primaria"])
    ax.plot(evolucao["data"], evolucao["valor_liquido"], label="Valor líquido", color=CORES["texto_claro"])
    ax.set_title("Evolução até o vencimento")
    ax.set_ylabel("Saldo (R$)")
    ax.legend()
    # Rótulos de data apenas em alguns pontos
    passo = max(1, len(evolucao) // 6)
    ax.set_xticks(list(evolucao["data"])[::passo])
    fig.autofmt_xdate()
    fig.tight_layout()

    buffer = io.BytesIO()
    fig.savefig(buffer, format="png", dpi=150)
    plt.close(fig)
    return buffer.getvalue()


def gerar_pdf_dashboard(snapshot, incluir_grafico=True):
    """
    Renderiza o dashboard em PDF (A4).

    Args:
        snapshot (DashboardSnapshot): Dashboard a ser renderizado
        incluir_grafico (bool): Se inclui a página com o gráfico de evolução

    Returns:
        bytes: Conteúdo do PDF
    """
    termos = snapshot.termos
    rendimento = snapshot.rendimento
    indicadores = snapshot.indicadores_mercado
    comparativo = snapshot.comparativo_mercado

    buffer = io.BytesIO()
    c = canvas.Canvas(buffer, pagesize=A4)
    c.setTitle("Dashboard de Investimento - Renix")
    c.setAuthor("Renix Finance")
    w, h = A4
    x, y = 2*cm, h - 2*cm

    def draw_line(txt, dy=0.6*cm, bold=False):
        nonlocal y
        y -= dy
        if y < 2*cm:
            c.showPage()
            y = h - 2*cm
        c.setFillColor(CORES["texto"])
        c.setFont("Helvetica-Bold" if bold else "Helvetica", 11 if bold else 10)
        c.drawString(x, y, txt)

    # Cabeçalho
    c.setFillColor(CORES["fundo"])
    c.rect(0, h - 3*cm, w, 3*cm, stroke=0, fill=1)
    c.setFillColor(CORES["primaria"])
    c.setFont("Helvetica-Bold", 20)
    c.drawString(x, y, "RENIX")
    c.setFillColor(CORES["texto_claro"])
    c.setFont("Helvetica", 11)
    c.drawString(x, y - 0.7*cm, "Dashboard de Investimento")
    c.setFont("Helvetica", 9)
    c.drawRightString(w - 2*cm, y, datetime.now().strftime("%d/%m/%Y %H:%M:%S"))
    y -= 1.5*cm

    draw_line(f"{termos.tipo_investimento.value} - {snapshot.nome_banco or 'Banco não informado'}", bold=True)
    draw_line(f"Valor investido: {formatar_moeda(termos.valor_investido)}")
    draw_line(f"Valor bruto: {formatar_moeda(rendimento.valor_bruto)}  "
              f"(ganho bruto: {formatar_moeda(rendimento.ganho_bruto)})")
    draw_line(f"Valor líquido: {formatar_moeda(rendimento.valor_liquido)}  "
              f"(rendido: {formatar_moeda(rendimento.valor_rendido)})")
    draw_line(f"Valor projetado no vencimento: {formatar_moeda(snapshot.valor_projetado)}")

    draw_line("Impostos e taxas", dy=0.9*cm, bold=True)
    draw_line(f"Imposto de renda ({formatar_percentual(rendimento.aliquota_ir, 1)}): "
              f"{formatar_moeda(rendimento.imposto_renda)}")
    draw_line(f"IOF ({formatar_percentual(rendimento.aliquota_iof, 0)}): {formatar_moeda(rendimento.iof)}")
    draw_line(f"Outras taxas: {formatar_moeda(rendimento.outras_taxas)}")

    draw_line("Rentabilidade", dy=0.9*cm, bold=True)
    draw_line(f"No período: {formatar_percentual(rendimento.rentabilidade_periodo)} bruto, "
              f"{formatar_percentual(rendimento.rentabilidade_liquida_periodo)} líquido")
    if rendimento.anualizacao_indefinida:
        draw_line("Anualizada: indisponível (avaliação no dia da aplicação)")
    else:
        draw_line(f"Anualizada: {formatar_percentual(rendimento.rentabilidade_anualizada)}")

    draw_line("Detalhes e indicadores", dy=0.9*cm, bold=True)
    draw_line(f"Início: {termos.data_inicio.strftime('%d/%m/%Y')} | "
              f"Vencimento: {termos.data_vencimento.strftime('%d/%m/%Y')} | "
              f"Dias corridos: {rendimento.dias_corridos}")
    draw_line(f"Risco: {termos.risco}/5 | Liquidez: {snapshot.prazo_liquidez} | "
              f"FGC: {'Sim' if termos.garantia_fgc else 'Não'}")
    draw_line(f"SELIC: {formatar_percentual(indicadores.selic)} | CDI: {formatar_percentual(indicadores.cdi)} | "
              f"IPCA: {formatar_percentual(indicadores.ipca)}")
    draw_line(f"Versus poupança: {formatar_percentual(comparativo.versus_poupanca)} p.p. | "
              f"CDI: {formatar_percentual(comparativo.versus_cdi)} p.p. | "
              f"IPCA: {formatar_percentual(comparativo.versus_ipca)} p.p.")

    if snapshot.alertas:
        draw_line("Alertas", dy=0.9*cm, bold=True)
        for alerta in snapshot.alertas:
            draw_line(f"- {alerta}")

    if incluir_grafico:
        evolucao = gerar_evolucao(termos, indicadores)
        png = grafico_evolucao_png(evolucao)
        c.showPage()
        c.setFillColor(CORES["texto"])
        c.setFont("Helvetica-Bold", 12)
        c.drawString(2*cm, h - 2*cm, "Gráfico - Evolução até o vencimento")
        img = ImageReader(io.BytesIO(png))
        c.drawImage(img, 2*cm, h - 2*cm - 10*cm, width=17*cm, height=9*cm, preserveAspectRatio=True, anchor='n')

    c.setFillColor(CORES["texto_claro"])
    c.setFont("Helvetica", 8)
    c.drawString(2*cm, 1.2*cm, "Simulação educacional. Não constitui recomendação de investimento.")
    c.save()

    conteudo = buffer.getvalue()
    logger.info(f"PDF do dashboard {snapshot.id} gerado: {len(conteudo)} bytes")
    return conteudo
