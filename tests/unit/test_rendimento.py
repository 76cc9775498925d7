import json
import unittest
from dataclasses import replace
from datetime import date
from decimal import Decimal, ROUND_HALF_UP

from renix.erros import DataAvaliacaoInvalidaError, TermosInvalidosError
from renix.rendimento import (
    IndicadoresMercado,
    TermosInvestimento,
    TipoInvestimento,
    TipoTaxa,
    anualizar,
    calcular_rendimento,
    custo_performance,
    fator_composto,
    taxa_efetiva_anual,
)


def _centavos(valor):
    return valor.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


class TestCalcularRendimento(unittest.TestCase):
    """Testes para o cálculo de rendimento, impostos e valor líquido"""

    def setUp(self):
        self.inicio = date(2023, 1, 1)
        self.vencimento = date(2024, 1, 1)  # 365 dias
        self.indicadores = IndicadoresMercado(selic="10.5", cdi="10", ipca="4.5")
        self.prefixado = TermosInvestimento(
            valor_investido=10000,
            data_inicio=self.inicio,
            data_vencimento=self.vencimento,
            taxa_anual=12,
            tipo_taxa=TipoTaxa.PREFIXADO,
            liquidez=2,
            risco=2,
            garantia_fgc=True,
        )

    def test_prefixado_um_ano(self):
        """10.000 a 12% a.a. por 365 dias: bruto 11.200, IR de 17,5% sobre o ganho"""
        resultado = calcular_rendimento(self.prefixado, self.indicadores, self.vencimento)

        self.assertEqual(resultado.dias_corridos, 365)
        self.assertEqual(resultado.valor_bruto, Decimal("11200.00"))
        self.assertEqual(resultado.aliquota_ir, Decimal("17.5"))
        self.assertEqual(resultado.iof, Decimal("0.00"))
        self.assertEqual(resultado.imposto_renda, Decimal("210.00"))
        self.assertEqual(resultado.outras_taxas, Decimal("0.00"))
        self.assertEqual(resultado.valor_liquido, Decimal("10990.00"))
        self.assertEqual(resultado.rentabilidade_periodo, Decimal("12"))
        self.assertEqual(resultado.rentabilidade_anualizada, Decimal("12"))
        self.assertEqual(resultado.rentabilidade_liquida_periodo, Decimal("9.9"))
        self.assertFalse(resultado.anualizacao_indefinida)

    def test_dia_zero(self):
        """Avaliação no dia da aplicação não é erro: rendimento zero e anualização sinalizada"""
        resultado = calcular_rendimento(self.prefixado, self.indicadores, self.inicio)

        self.assertEqual(resultado.dias_corridos, 0)
        self.assertEqual(resultado.rentabilidade_periodo, Decimal("0"))
        self.assertEqual(resultado.valor_bruto, Decimal("10000"))
        self.assertEqual(resultado.valor_liquido, Decimal("10000"))
        self.assertEqual(resultado.rentabilidade_anualizada, Decimal("0"))
        self.assertTrue(resultado.anualizacao_indefinida)

    def test_cdi_110_por_cento(self):
        """110% de um CDI de 10% a.a. resulta em taxa efetiva de 11% a.a."""
        termos = replace(self.prefixado, tipo_taxa=TipoTaxa.CDI, taxa_anual=None,
                         percentual_indexador=Decimal("110"))
        self.assertEqual(taxa_efetiva_anual(termos, self.indicadores), Decimal("11"))

        avaliacao = date(2023, 6, 30)  # 180 dias
        resultado = calcular_rendimento(termos, self.indicadores, avaliacao)

        referencia = 10000 * 1.11 ** (180 / 365)
        self.assertEqual(resultado.dias_corridos, 180)
        self.assertEqual(resultado.taxa_efetiva_anual, Decimal("11"))
        self.assertAlmostEqual(float(resultado.valor_bruto), referencia, delta=0.01)
        self.assertEqual(resultado.aliquota_ir, Decimal("22.5"))
        self.assertAlmostEqual(float(resultado.rentabilidade_anualizada), 11.0, places=4)

    def test_ipca_mais_spread(self):
        termos = replace(self.prefixado, tipo_taxa=TipoTaxa.IPCA, taxa_anual=Decimal("6"),
                         percentual_indexador=Decimal("100"))
        self.assertEqual(taxa_efetiva_anual(termos, self.indicadores), Decimal("10.5"))

        resultado = calcular_rendimento(termos, self.indicadores, self.vencimento)
        self.assertEqual(resultado.valor_bruto, Decimal("11050.00"))

    def test_identidade_do_valor_liquido(self):
        cenarios = [
            (self.prefixado, date(2023, 1, 11)),
            (self.prefixado, date(2023, 8, 17)),
            (replace(self.prefixado, taxa_administracao=Decimal("1.5"), taxa_custodia=Decimal("0.2")),
             date(2023, 3, 3)),
            (replace(self.prefixado, tipo_taxa=TipoTaxa.CDI, taxa_anual=None,
                     percentual_indexador=Decimal("97.3")), date(2023, 1, 20)),
            (replace(self.prefixado, taxa_performance=Decimal("20"), taxa_administracao=Decimal("0.7")),
             date(2023, 9, 13)),
            (replace(self.prefixado, tipo_taxa=TipoTaxa.POUPANCA, taxa_anual=None,
                     taxa_performance=Decimal("10"), benchmark_performance=Decimal("2")), date(2023, 4, 7)),
        ]
        for termos, avaliacao in cenarios:
            with self.subTest(avaliacao=avaliacao):
                r = calcular_rendimento(termos, self.indicadores, avaliacao)
                self.assertEqual(r.valor_liquido, r.valor_bruto - r.imposto_renda - r.iof - r.outras_taxas)

    def test_iof_descontado_antes_do_ir(self):
        """O IR incide sobre o ganho já líquido de IOF"""
        avaliacao = date(2023, 1, 11)  # 10 dias: IOF de 66%
        termos = replace(self.prefixado, valor_investido=Decimal("100000"))
        resultado = calcular_rendimento(termos, self.indicadores, avaliacao)

        ganho = resultado.valor_bruto - termos.valor_investido
        self.assertEqual(resultado.aliquota_iof, Decimal("66"))
        self.assertEqual(resultado.iof, _centavos(ganho * Decimal("66") / 100))
        self.assertEqual(resultado.imposto_renda, _centavos((ganho - resultado.iof) * Decimal("22.5") / 100))
        self.assertLess(resultado.imposto_renda, _centavos(ganho * Decimal("22.5") / 100))

    def test_isento_nao_paga_ir(self):
        termos = replace(self.prefixado, isento_ir=True)
        for avaliacao in (date(2023, 1, 15), date(2023, 5, 1), self.vencimento):
            resultado = calcular_rendimento(termos, self.indicadores, avaliacao)
            self.assertEqual(resultado.imposto_renda, Decimal("0"))

    def test_isento_nao_paga_iof(self):
        """LCI isenta resgatada no 10º dia: sem IOF e sem IR, líquido igual ao bruto"""
        termos = replace(self.prefixado, tipo_taxa=TipoTaxa.CDI, taxa_anual=None,
                         percentual_indexador=Decimal("95"), valor_investido=Decimal("100000"),
                         isento_ir=True, tipo_investimento=TipoInvestimento.LCI)
        resultado = calcular_rendimento(termos, self.indicadores, date(2023, 1, 11))

        self.assertEqual(resultado.dias_corridos, 10)
        self.assertGreater(resultado.ganho_bruto, Decimal("0"))
        self.assertEqual(resultado.aliquota_iof, Decimal("0"))
        self.assertEqual(resultado.iof, Decimal("0"))
        self.assertEqual(resultado.imposto_renda, Decimal("0"))
        self.assertEqual(resultado.valor_liquido, resultado.valor_bruto)

    def test_nao_isento_no_mesmo_prazo_paga_iof(self):
        termos = replace(self.prefixado, valor_investido=Decimal("100000"))
        resultado = calcular_rendimento(termos, self.indicadores, date(2023, 1, 11))
        self.assertGreater(resultado.iof, Decimal("0"))

    def test_ganho_bruto(self):
        resultado = calcular_rendimento(self.prefixado, self.indicadores, self.vencimento)
        self.assertEqual(resultado.ganho_bruto, Decimal("1200.00"))
        self.assertEqual(resultado.valor_rendido, Decimal("990.00"))

    def test_taxa_performance_sobre_o_cdi(self):
        """20% sobre o que superou o CDI: 11.200 contra 11.000 do benchmark"""
        termos = replace(self.prefixado, taxa_performance=Decimal("20"))
        resultado = calcular_rendimento(termos, self.indicadores, self.vencimento)

        self.assertEqual(resultado.outras_taxas, Decimal("40.00"))
        self.assertEqual(resultado.valor_liquido, Decimal("10950.00"))

    def test_taxa_performance_com_benchmark_informado(self):
        termos = replace(self.prefixado, taxa_performance=Decimal("20"), benchmark_performance=Decimal("11"))
        resultado = calcular_rendimento(termos, self.indicadores, self.vencimento)

        self.assertEqual(resultado.outras_taxas, Decimal("20.00"))
        self.assertEqual(resultado.valor_liquido, Decimal("10970.00"))

    def test_taxa_performance_sem_superar_o_benchmark(self):
        termos = replace(self.prefixado, taxa_performance=Decimal("20"), benchmark_performance=Decimal("15"))
        resultado = calcular_rendimento(termos, self.indicadores, self.vencimento)

        self.assertEqual(resultado.outras_taxas, Decimal("0.00"))
        self.assertEqual(resultado.valor_liquido, Decimal("10990.00"))

    def test_taxa_performance_somada_a_administracao(self):
        termos = replace(self.prefixado, taxa_performance=Decimal("20"), taxa_administracao=Decimal("1"))
        resultado = calcular_rendimento(termos, self.indicadores, self.vencimento)

        self.assertEqual(resultado.outras_taxas, Decimal("140.00"))
        self.assertEqual(resultado.valor_liquido, Decimal("10850.00"))

    def test_custo_performance_dia_zero(self):
        termos = replace(self.prefixado, taxa_performance=Decimal("20"))
        self.assertEqual(custo_performance(termos, self.indicadores, Decimal("10000"), 0), Decimal("0"))

    def test_poupanca_com_selic_alta(self):
        """SELIC acima de 8,5%: 0,5% a.m. capitalizado"""
        termos = replace(self.prefixado, tipo_taxa=TipoTaxa.POUPANCA, taxa_anual=None)
        resultado = calcular_rendimento(termos, self.indicadores, self.vencimento)

        self.assertEqual(resultado.taxa_efetiva_anual, Decimal("6.167781"))
        self.assertEqual(resultado.valor_bruto, Decimal("10616.78"))
        self.assertEqual(resultado.valor_liquido,
                         resultado.valor_bruto - resultado.imposto_renda - resultado.iof - resultado.outras_taxas)

    def test_poupanca_com_selic_baixa(self):
        termos = replace(self.prefixado, tipo_taxa=TipoTaxa.POUPANCA, taxa_anual=None)
        indicadores = IndicadoresMercado(selic="6", cdi="5.9", ipca="4")
        taxa = taxa_efetiva_anual(termos, indicadores)
        self.assertAlmostEqual(float(taxa), (1.0035 ** 12 - 1) * 100, places=8)

    def test_poupanca_isenta(self):
        termos = replace(self.prefixado, tipo_taxa=TipoTaxa.POUPANCA, taxa_anual=None, isento_ir=True,
                         tipo_investimento=TipoInvestimento.POUPANCA)
        resultado = calcular_rendimento(termos, self.indicadores, date(2023, 1, 20))
        self.assertEqual(resultado.valor_liquido, resultado.valor_bruto)

    def test_outras_taxas_pro_rata(self):
        termos = replace(self.prefixado, taxa_administracao=Decimal("1"), taxa_custodia=Decimal("0.5"))
        resultado = calcular_rendimento(termos, self.indicadores, self.vencimento)
        self.assertEqual(resultado.outras_taxas, Decimal("150.00"))
        self.assertEqual(resultado.valor_liquido, Decimal("10840.00"))

    def test_avaliacao_apos_vencimento_limita_no_vencimento(self):
        resultado = calcular_rendimento(self.prefixado, self.indicadores, date(2025, 6, 1))
        self.assertEqual(resultado.dias_corridos, 365)
        self.assertEqual(resultado.data_avaliacao, self.vencimento)

    def test_idempotencia(self):
        avaliacao = date(2023, 9, 9)
        primeiro = calcular_rendimento(self.prefixado, self.indicadores, avaliacao)
        segundo = calcular_rendimento(self.prefixado, self.indicadores, avaliacao)
        self.assertEqual(primeiro, segundo)

    def test_valor_liquido_negativo_sem_limite(self):
        termos = replace(self.prefixado, taxa_administracao=Decimal("500"))
        resultado = calcular_rendimento(termos, self.indicadores, self.vencimento,
                                        limitar_liquido_negativo=False)
        self.assertLess(resultado.valor_liquido, 0)
        self.assertFalse(resultado.valor_liquido_limitado)

    def test_valor_liquido_negativo_limitado(self):
        termos = replace(self.prefixado, taxa_administracao=Decimal("500"))
        resultado = calcular_rendimento(termos, self.indicadores, self.vencimento,
                                        limitar_liquido_negativo=True)
        self.assertEqual(resultado.valor_liquido, Decimal("0"))
        self.assertTrue(resultado.valor_liquido_limitado)


class TestValidacaoTermos(unittest.TestCase):
    """Testes para os erros de termos e datas"""

    def setUp(self):
        self.indicadores = IndicadoresMercado(selic=10, cdi=10, ipca=4)
        self.termos = TermosInvestimento(
            valor_investido=1000,
            data_inicio=date(2023, 1, 1),
            data_vencimento=date(2023, 12, 31),
            taxa_anual=10,
            tipo_taxa="PREFIXADO",
        )

    def _assert_invalido(self, termos):
        with self.assertRaises(TermosInvalidosError):
            calcular_rendimento(termos, self.indicadores, date(2023, 6, 1))

    def test_vencimento_igual_ao_inicio(self):
        self._assert_invalido(replace(self.termos, data_vencimento=date(2023, 1, 1)))

    def test_vencimento_anterior_ao_inicio(self):
        self._assert_invalido(replace(self.termos, data_vencimento=date(2022, 12, 1)))

    def test_valor_investido_negativo_ou_zero(self):
        self._assert_invalido(replace(self.termos, valor_investido=Decimal("-1")))
        self._assert_invalido(replace(self.termos, valor_investido=Decimal("0")))

    def test_taxa_nao_positiva(self):
        self._assert_invalido(replace(self.termos, taxa_anual=Decimal("0")))
        self._assert_invalido(replace(self.termos, taxa_anual=Decimal("-2")))

    def test_indexado_sem_percentual(self):
        self._assert_invalido(replace(self.termos, tipo_taxa=TipoTaxa.CDI, taxa_anual=None))
        self._assert_invalido(replace(self.termos, tipo_taxa=TipoTaxa.IPCA))

    def test_prefixado_com_percentual(self):
        self._assert_invalido(replace(self.termos, percentual_indexador=Decimal("100")))

    def test_classes_fora_do_intervalo(self):
        self._assert_invalido(replace(self.termos, risco=6))
        self._assert_invalido(replace(self.termos, liquidez=0))

    def test_taxas_negativas(self):
        self._assert_invalido(replace(self.termos, taxa_custodia=Decimal("-0.1")))

    def test_taxa_performance_negativa(self):
        self._assert_invalido(replace(self.termos, taxa_performance=Decimal("-5")))
        self._assert_invalido(replace(self.termos, taxa_performance=Decimal("10"),
                                      benchmark_performance=Decimal("-1")))

    def test_poupanca_sem_taxa_anual(self):
        termos = replace(self.termos, tipo_taxa=TipoTaxa.POUPANCA, taxa_anual=None)
        resultado = calcular_rendimento(termos, self.indicadores, date(2023, 6, 1))
        self.assertGreater(resultado.valor_bruto, termos.valor_investido)

    def test_poupanca_com_percentual(self):
        self._assert_invalido(replace(self.termos, tipo_taxa=TipoTaxa.POUPANCA, taxa_anual=None,
                                      percentual_indexador=Decimal("100")))

    def test_tipo_taxa_desconhecido(self):
        with self.assertRaises(TermosInvalidosError):
            replace(self.termos, tipo_taxa="POS_FIXADO")

    def test_avaliacao_antes_do_inicio(self):
        with self.assertRaises(DataAvaliacaoInvalidaError):
            calcular_rendimento(self.termos, self.indicadores, date(2022, 12, 31))


class TestFuncoesAuxiliares(unittest.TestCase):

    def test_fator_composto_dia_zero(self):
        self.assertEqual(fator_composto(Decimal("12"), 0), Decimal("1"))

    def test_fator_composto_ano_inteiro(self):
        self.assertEqual(fator_composto(Decimal("12"), 365), Decimal("1.12"))

    def test_anualizar_dia_zero(self):
        self.assertEqual(anualizar(Decimal("0"), 0), (Decimal("0"), True))

    def test_anualizar_inverte_o_periodo(self):
        periodo = (fator_composto(Decimal("8"), 90) - 1) * 100
        taxa, indefinida = anualizar(periodo, 90)
        self.assertFalse(indefinida)
        self.assertAlmostEqual(float(taxa), 8.0, places=10)

    def test_termos_de_dict_reconstroi_os_termos(self):
        termos = TermosInvestimento(
            valor_investido="2500.50",
            data_inicio=date(2023, 2, 1),
            data_vencimento=date(2025, 2, 1),
            taxa_anual=None,
            tipo_taxa=TipoTaxa.CDI,
            percentual_indexador="98",
            isento_ir=True,
            taxa_performance="20",
            benchmark_performance="10",
            tipo_investimento=TipoInvestimento.LCA,
        )
        serializado = json.loads(json.dumps(termos.para_dict()))
        self.assertEqual(TermosInvestimento.de_dict(serializado), termos)


if __name__ == '__main__':
    unittest.main()
