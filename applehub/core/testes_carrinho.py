# applehub/core/testes_carrinho.py

import unittest
from decimal import Decimal
from unittest.mock import Mock

from applehub.core.cart_sync import Debouncer, EstadoCarrinho, SincronizadorCarrinho
from applehub.core.entities import ItemCarrinho, Produto
from applehub.core.exceptions import CarrinhoRemotoError, DadosInvalidosError
from applehub.infrastructure.memoria import ArmazenamentoLocalMemoria, CarrinhoRepositoryMemoria


class TimerFalso:
    """Substitui threading.Timer: só dispara quando o teste mandar."""

    def __init__(self, atraso, funcao, args=()):
        self.atraso = atraso
        self.funcao = funcao
        self.args = args
        self.daemon = False
        self.iniciado = False
        self.cancelado = False

    def start(self):
        self.iniciado = True

    def cancel(self):
        self.cancelado = True

    def disparar(self):
        if not self.cancelado:
            self.funcao(*self.args)


class TestDebouncer(unittest.TestCase):

    def setUp(self):
        self.timers = []

        def fabrica(atraso, funcao, args=()):
            timer = TimerFalso(atraso, funcao, args)
            self.timers.append(timer)
            return timer

        self.debouncer = Debouncer(atraso=0.5, fabrica_timer=fabrica)

    def test_ultimo_agendamento_vence(self):
        """
        Cenário: Três agendamentos na mesma chave; só o último executa.
        """
        chamadas = []

        for valor in (1, 2, 3):
            self.debouncer.agendar('a', chamadas.append, valor)
        for timer in self.timers:
            timer.disparar()

        self.assertEqual(chamadas, [3])
        self.assertEqual([t.cancelado for t in self.timers], [True, True, False])
        self.assertTrue(all(t.daemon and t.iniciado and t.atraso == 0.5 for t in self.timers))

    def test_chaves_independentes(self):
        chamadas = []

        self.debouncer.agendar('a', chamadas.append, 'a')
        self.debouncer.agendar('b', chamadas.append, 'b')

        self.assertEqual(sorted(self.debouncer.pendentes), ['a', 'b'])
        self.assertEqual(self.debouncer.descarregar(), 2)
        self.assertEqual(sorted(chamadas), ['a', 'b'])
        self.assertEqual(self.debouncer.pendentes, [])


class TestSincronizadorCarrinho(unittest.TestCase):

    def setUp(self):
        self.iphone = Produto(id='iphone', nome='iPhone 15', preco_vista=Decimal('5000.00'))
        self.airpods = Produto(id='airpods', nome='AirPods Pro', preco_vista=Decimal('1500.00'))

        self.agora = [1_000_000.0]
        self.armazenamento = ArmazenamentoLocalMemoria(relogio=lambda: self.agora[0])
        self.memoria = CarrinhoRepositoryMemoria({'iphone': self.iphone, 'airpods': self.airpods})
        self.remoto = Mock(wraps=self.memoria)

        self.timers = []

        def fabrica(atraso, funcao, args=()):
            timer = TimerFalso(atraso, funcao, args)
            self.timers.append(timer)
            return timer

        self.sincronizador = SincronizadorCarrinho(
            self.armazenamento, self.remoto, debouncer=Debouncer(fabrica_timer=fabrica)
        )

    def quantidades(self):
        return {item.produto_id: item.quantidade for item in self.sincronizador.itens}

    def test_convidado_fica_apenas_local(self):
        """
        Cenário: Convidado adiciona itens; nada é enviado ao carrinho remoto.
        """
        self.sincronizador.adicionar(self.iphone, 1)
        self.sincronizador.adicionar(self.iphone, 2)

        self.assertEqual(self.sincronizador.estado, EstadoCarrinho.CONVIDADO)
        self.assertEqual(self.quantidades(), {'iphone': 3})
        self.assertEqual([i.quantidade for i in self.armazenamento.itens], [3])
        self.assertEqual(self.sincronizador.total(), Decimal('15000.00'))
        self.remoto.adicionar_item.assert_not_called()

    def test_quantidade_invalida(self):
        with self.assertRaises(DadosInvalidosError):
            self.sincronizador.adicionar(self.iphone, 0)

    def test_login_soma_itens_do_convidado(self):
        """
        Cenário: Remoto tem 2 iPhones; convidado tinha 1 iPhone e 3 AirPods.
        Depois do login: 3 iPhones e 3 AirPods, e o carrinho local é limpo.
        """
        # ARRANGE
        self.memoria.adicionar_item('u1', 'iphone', 2)
        self.sincronizador.adicionar(self.iphone, 1)
        self.sincronizador.adicionar(self.airpods, 3)

        # ACT
        self.sincronizador.entrar('u1')

        # ASSERT
        self.assertEqual(self.sincronizador.estado, EstadoCarrinho.AUTENTICADO)
        self.assertEqual(self.quantidades(), {'iphone': 3, 'airpods': 3})
        self.assertEqual(self.armazenamento.itens, [])

    def test_login_repetido_nao_mescla_de_novo(self):
        self.sincronizador.adicionar(self.iphone, 1)
        self.sincronizador.entrar('u1')
        self.sincronizador.entrar('u1')

        self.assertEqual(self.quantidades(), {'iphone': 1})

    def test_autenticado_envia_ao_remoto(self):
        self.sincronizador.entrar('u1')

        item = self.sincronizador.adicionar(self.iphone, 1)

        self.remoto.adicionar_item.assert_called_once_with('u1', 'iphone', 1)
        self.assertFalse(item.id.startswith('temp-'))

    def test_atualizacoes_rapidas_geram_uma_escrita(self):
        """
        Cenário: Usuário clica três vezes no "+" em menos de 500 ms.
        Apenas o último valor é enviado ao remoto.
        """
        self.sincronizador.entrar('u1')
        self.sincronizador.adicionar(self.iphone, 1)

        for quantidade in (2, 3, 4):
            self.sincronizador.atualizar_quantidade('iphone', quantidade)
        self.remoto.atualizar_quantidade.assert_not_called()

        for timer in self.timers:
            timer.disparar()

        self.remoto.atualizar_quantidade.assert_called_once_with('u1', 'iphone', 4)
        self.assertEqual(self.memoria.buscar_itens('u1')[0].quantidade, 4)

    def test_quantidade_zero_remove(self):
        self.sincronizador.entrar('u1')
        self.sincronizador.adicionar(self.iphone, 2)

        self.sincronizador.atualizar_quantidade('iphone', 0)

        self.assertEqual(self.quantidades(), {})
        self.assertEqual(self.memoria.buscar_itens('u1'), [])

    def test_offline_enfileira_e_reproduz_em_ordem(self):
        """
        Cenário: Sem conexão o usuário mexe no carrinho; ao reconectar a fila
        é aplicada na ordem original e o carrinho é recarregado do remoto.
        """
        # ARRANGE
        self.sincronizador.entrar('u1')
        self.sincronizador.ficar_offline()

        # ACT (offline)
        self.sincronizador.adicionar(self.iphone, 2)
        self.sincronizador.atualizar_quantidade('iphone', 5)
        self.sincronizador.adicionar(self.airpods, 1)
        self.sincronizador.remover('airpods')

        # ASSERT (offline)
        self.assertEqual(self.sincronizador.estado, EstadoCarrinho.OFFLINE)
        self.assertEqual([op.tipo for op in self.armazenamento.fila], ['add', 'update', 'add', 'remove'])
        self.remoto.adicionar_item.assert_not_called()
        self.assertEqual(self.quantidades(), {'iphone': 5})

        # ACT (reconexão)
        aplicadas = self.sincronizador.reconectar()

        # ASSERT (reconexão)
        self.assertEqual(aplicadas, 4)
        self.assertEqual(self.armazenamento.fila, [])
        self.assertEqual(self.sincronizador.estado, EstadoCarrinho.AUTENTICADO)
        self.assertEqual(self.quantidades(), {'iphone': 5})
        self.assertEqual({i.produto_id: i.quantidade for i in self.memoria.buscar_itens('u1')}, {'iphone': 5})

    def test_escrita_pendente_vai_para_fila_ao_ficar_offline(self):
        self.sincronizador.entrar('u1')
        self.sincronizador.adicionar(self.iphone, 1)
        self.sincronizador.atualizar_quantidade('iphone', 4)

        self.sincronizador.ficar_offline()

        self.assertTrue(self.timers[-1].cancelado)
        self.assertEqual([(op.tipo, op.dados) for op in self.armazenamento.fila],
                         [('update', {'produto_id': 'iphone', 'quantidade': 4})])

        self.sincronizador.reconectar()
        self.assertEqual(self.memoria.buscar_itens('u1')[0].quantidade, 4)

    def test_falha_em_operacao_da_fila_nao_interrompe(self):
        self.sincronizador.entrar('u1')
        self.sincronizador.ficar_offline()
        self.sincronizador.adicionar(self.iphone, 1)
        self.sincronizador.adicionar(self.airpods, 1)

        def recusar_iphone(usuario_id, produto_id, quantidade):
            if produto_id == 'iphone':
                raise CarrinhoRemotoError()
            return self.memoria.adicionar_item(usuario_id, produto_id, quantidade)

        self.remoto.adicionar_item.side_effect = recusar_iphone

        aplicadas = self.sincronizador.reconectar()

        self.assertEqual(aplicadas, 1)
        self.assertEqual(self.armazenamento.fila, [])
        self.assertEqual(self.quantidades(), {'airpods': 1})

    def test_falha_remota_recarrega_estado_autoritativo(self):
        """
        Cenário: O remoto recusa a escrita; o carrinho local é substituído
        pelo estado remoto em vez de tentar de novo.
        """
        self.sincronizador.entrar('u1')
        self.remoto.adicionar_item.side_effect = CarrinhoRemotoError()

        self.sincronizador.adicionar(self.iphone, 1)

        self.assertEqual(self.quantidades(), {})

    def test_login_sem_conexao_usa_cache_recente(self):
        self.armazenamento.salvar_cache('u1', [ItemCarrinho(produto_id='iphone', quantidade=2, produto=self.iphone)])
        self.remoto.buscar_itens.side_effect = CarrinhoRemotoError()

        self.sincronizador.entrar('u1')

        self.assertEqual(self.quantidades(), {'iphone': 2})

    def test_cache_expira_em_24_horas(self):
        self.armazenamento.salvar_cache('u1', [ItemCarrinho(produto_id='iphone', quantidade=2)])
        self.agora[0] += 24 * 60 * 60 + 1

        self.assertIsNone(self.armazenamento.carregar_cache('u1', 24 * 60 * 60))
        self.assertIsNone(self.armazenamento.carregar_cache('u2', 10 ** 9))

    def test_notificacao_remota_recarrega(self):
        self.sincronizador.entrar('u1')
        self.memoria.adicionar_item('u1', 'airpods', 2)

        self.sincronizador.notificar_mudanca_remota()

        self.assertEqual(self.quantidades(), {'airpods': 2})

    def test_sair_limpa_tudo(self):
        self.sincronizador.entrar('u1')
        self.sincronizador.adicionar(self.iphone, 1)

        self.sincronizador.sair()

        self.assertEqual(self.sincronizador.estado, EstadoCarrinho.CONVIDADO)
        self.assertIsNone(self.sincronizador.usuario_id)
        self.assertEqual(self.sincronizador.itens, [])
        self.assertIsNone(self.armazenamento.cache)
        self.assertEqual(self.memoria.buscar_itens('u1')[0].quantidade, 1)


if __name__ == '__main__':
    unittest.main()
