# applehub/core/testes.py

import hashlib
import hmac
import json
import random
import re
import unittest
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from unittest.mock import Mock, call

from applehub.core.entities import (
    AnaliseCredito, CobrancaCartao, CobrancaPix, ConfiguracaoPagamento, ItemCarrinho,
    OperacaoOffline, Pedido, Produto, Transacao, Usuario
)
from applehub.core.exceptions import (
    AcessoNegadoError, AssinaturaInvalidaError, CarrinhoVazioError, CartaoNaoAutorizadoError,
    ConfiguracaoNaoEncontradaError, DadosInvalidosError, EstornoFalhouError, PagamentoFalhouError,
    PedidoNaoEncontradoError, ProdutoNaoEncontradoError, SenhaAdminInvalidaError,
    StatusInvalidoError, TransacaoNaoEncontradaError, TransicaoInvalidaError
)
from applehub.core.status_pedido import MaquinaEstadosPedido, rotulo_status, transicao_permitida
from applehub.core.use_cases import (
    AtualizarStatusPedidoUseCase,
    CancelarPixExpiradosUseCase,
    CriarPedidoUseCase,
    DeletarTodosUsuariosUseCase,
    DeletarUsuarioUseCase,
    GerarPixUseCase,
    GerenciarCarrinhoUseCase,
    GerenciarConfiguracaoPagamentoUseCase,
    LimparDadosUseCase,
    ListarUsuariosUseCase,
    NotificarStatusPedidoUseCase,
    ProcessarWebhookPagarmeUseCase,
    RecuperarSenhaUseCase,
    RegistrarVisitaUseCase,
    VerificadorSenhaAdmin,
    VerificarCartaoUseCase,
)
from applehub.core.utils import (
    formatar_cpf, formatar_telefone, formatar_numero_cartao, formatar_validade_cartao,
    gerar_codigo_rastreio, interpretar_user_agent, mascarar_numero_cartao, validar_cpf,
    validar_telefone, validar_validade_cartao
)

AGORA = datetime(2025, 3, 10, 12, 0, tzinfo=timezone.utc)


def criar_pedido(status='em_analise', **kwargs) -> Pedido:
    dados = dict(
        id='pedido-1',
        usuario_id='usuario-1',
        numero_pedido='APH1700000000000',
        status=status,
        subtotal=Decimal('1000.00'),
        frete=Decimal('0'),
        total=Decimal('1000.00'),
        tipo_pagamento='pix',
        endereco_entrega={'cidade': 'São Paulo'},
    )
    dados.update(kwargs)
    return Pedido(**dados)


# ====================================================================
# MÁQUINA DE ESTADOS DO PEDIDO
# ====================================================================
class TestMaquinaEstadosPedido(unittest.TestCase):

    def setUp(self):
        self.pedido_repo_mock = Mock()
        self.maquina = MaquinaEstadosPedido(self.pedido_repo_mock, gerador_rastreio=lambda: 'AB123456789BR')

    def test_transicao_permitida_grava_status_e_historico(self):
        """
        Cenário: Pedido em análise é aprovado.
        """
        # ARRANGE
        pedido = criar_pedido('em_analise')

        # ACT
        self.maquina.transicionar(pedido, 'aprovado', 'Crédito aprovado')

        # ASSERT
        self.pedido_repo_mock.atualizar_status.assert_called_once_with(
            'pedido-1', 'aprovado', observacao='Crédito aprovado', codigo_rastreio=None
        )

    def test_em_transporte_gera_codigo_de_rastreio(self):
        """
        Cenário: Pedido sem rastreio vai para transporte e recebe um código.
        """
        pedido = criar_pedido('em_separacao')

        self.maquina.transicionar(pedido, 'em_transporte')

        self.pedido_repo_mock.atualizar_status.assert_called_once_with(
            'pedido-1', 'em_transporte', observacao=None, codigo_rastreio='AB123456789BR'
        )

    def test_em_transporte_mantem_rastreio_existente(self):
        pedido = criar_pedido('em_separacao', codigo_rastreio='XY987654321BR')

        self.maquina.transicionar(pedido, 'em_transporte')

        _, kwargs = self.pedido_repo_mock.atualizar_status.call_args
        self.assertIsNone(kwargs['codigo_rastreio'])

    def test_estado_terminal_nao_muda(self):
        """
        Cenário: Pedido entregue não pode voltar para nenhum estado.
        """
        for terminal in ('entregue', 'cancelado'):
            with self.subTest(terminal=terminal):
                with self.assertRaises(TransicaoInvalidaError):
                    self.maquina.transicionar(criar_pedido(terminal), 'em_separacao')

        self.pedido_repo_mock.atualizar_status.assert_not_called()

    def test_status_desconhecido_falha(self):
        with self.assertRaises(StatusInvalidoError):
            self.maquina.transicionar(criar_pedido(), 'pedido_enviado')

    def test_tabela_de_transicoes(self):
        self.assertTrue(transicao_permitida('em_analise', 'cancelado'))
        self.assertTrue(transicao_permitida('em_transporte', 'entregue'))
        self.assertFalse(transicao_permitida('em_analise', 'entregue'))
        self.assertFalse(transicao_permitida('reprovado', 'aprovado'))
        self.assertEqual(rotulo_status('em_separacao'), 'Em Separação')


# ====================================================================
# CARRINHO (SERVIDOR)
# ====================================================================
class TestGerenciarCarrinho(unittest.TestCase):

    def setUp(self):
        self.carrinho_repo_mock = Mock()
        self.produto_repo_mock = Mock()
        self.use_case = GerenciarCarrinhoUseCase(self.carrinho_repo_mock, self.produto_repo_mock)
        self.produto_repo_mock.buscar_por_id.return_value = Produto(
            id='iphone-15', nome='iPhone 15', preco_vista=Decimal('5999.00'), estoque=5
        )

    def test_adicionar_item_soma_no_repositorio(self):
        self.use_case.adicionar_item('usuario-1', 'iphone-15', 2)

        self.carrinho_repo_mock.adicionar_item.assert_called_once_with('usuario-1', 'iphone-15', 2)

    def test_adicionar_produto_inativo_falha(self):
        self.produto_repo_mock.buscar_por_id.return_value = Produto(
            id='x', nome='Antigo', preco_vista=Decimal('1'), ativo=False
        )

        with self.assertRaises(ProdutoNaoEncontradoError):
            self.use_case.adicionar_item('usuario-1', 'x', 1)

    def test_adicionar_quantidade_invalida_falha(self):
        with self.assertRaises(DadosInvalidosError):
            self.use_case.adicionar_item('usuario-1', 'iphone-15', 0)

    def test_mesclar_ignora_produto_desconhecido(self):
        """
        Cenário: Itens de convidado são somados; produtos removidos do catálogo são ignorados.
        """
        self.produto_repo_mock.buscar_por_id.side_effect = lambda pid: (
            None if pid == 'sumiu' else Produto(id=pid, nome=pid, preco_vista=Decimal('10'))
        )

        mesclados = self.use_case.mesclar('usuario-1', [('a', 1), ('sumiu', 3), ('b', 2)])

        self.assertEqual(mesclados, 2)
        self.carrinho_repo_mock.adicionar_item.assert_has_calls([
            call('usuario-1', 'a', 1),
            call('usuario-1', 'b', 2),
        ])

    def test_reproduzir_fila_em_ordem_fifo(self):
        """
        Cenário: Operações offline são aplicadas na ordem em que foram feitas,
        e uma falha isolada não interrompe as demais.
        """
        operacoes = [
            OperacaoOffline(tipo='remove', dados={'produto_id': 'b'}, timestamp=3),
            OperacaoOffline(tipo='add', dados={'produto_id': 'a', 'quantidade': 1}, timestamp=1),
            OperacaoOffline(tipo='update', dados={}, timestamp=2),  # falta produto_id
        ]

        resultado = self.use_case.reproduzir_fila('usuario-1', operacoes)

        self.assertEqual(resultado, {'aplicadas': 2, 'falhas': 1})
        self.carrinho_repo_mock.adicionar_item.assert_called_once_with('usuario-1', 'a', 1)
        self.carrinho_repo_mock.remover_item.assert_called_once_with('usuario-1', 'b')


# ====================================================================
# CRIAR PEDIDO
# ====================================================================
class TestCriarPedido(unittest.TestCase):

    def setUp(self):
        self.carrinho_repo_mock = Mock()
        self.pedido_repo_mock = Mock()
        self.pedido_repo_mock.criar_pedido.side_effect = lambda pedido, observacao: pedido
        self.use_case = CriarPedidoUseCase(
            carrinho_repo=self.carrinho_repo_mock,
            pedido_repo=self.pedido_repo_mock,
            relogio=lambda: AGORA,
        )
        self.iphone = Produto(id='iphone', nome='iPhone 15', preco_vista=Decimal('5000.00'))
        self.capa = Produto(id='capa', nome='Capa MagSafe', preco_vista=Decimal('250.00'))
        self.carrinho_repo_mock.buscar_itens.return_value = [
            ItemCarrinho(produto_id='iphone', quantidade=1, produto=self.iphone),
            ItemCarrinho(produto_id='capa', quantidade=2, produto=self.capa),
        ]

    def test_criar_pedido_pix_com_sucesso(self):
        """
        Cenário: Checkout PIX cria o pedido com snapshot dos itens e pagamento confirmado.
        """
        # ACT
        pedido = self.use_case.executar('usuario-1', 'pix', {'cidade': 'Recife'}, frete=Decimal('30.00'))

        # ASSERT
        self.assertEqual(pedido.subtotal, Decimal('5500.00'))
        self.assertEqual(pedido.total, Decimal('5530.00'))
        self.assertEqual(pedido.status, 'pagamento_confirmado')
        self.assertEqual(pedido.numero_pedido, f"APH{int(AGORA.timestamp() * 1000)}")
        self.assertEqual([i.nome_produto for i in pedido.itens], ['iPhone 15', 'Capa MagSafe'])
        self.pedido_repo_mock.criar_pedido.assert_called_once_with(pedido, 'Pagamento confirmado')

    def test_criar_pedido_parcelado_fica_em_analise(self):
        pedido = self.use_case.executar('usuario-1', 'parcelamento_applehub', {}, parcelas=10)

        self.assertEqual(pedido.status, 'em_analise')
        self.assertEqual(pedido.parcelas, 10)
        self.assertEqual(pedido.valor_parcela, Decimal('550.00'))

    def test_carrinho_vazio_falha(self):
        self.carrinho_repo_mock.buscar_itens.return_value = []

        with self.assertRaises(CarrinhoVazioError):
            self.use_case.executar('usuario-1', 'pix', {})

        self.pedido_repo_mock.criar_pedido.assert_not_called()

    def test_tipo_pagamento_invalido_falha(self):
        with self.assertRaises(DadosInvalidosError):
            self.use_case.executar('usuario-1', 'boleto', {})


# ====================================================================
# STATUS E NOTIFICAÇÃO
# ====================================================================
class TestAtualizarStatusPedido(unittest.TestCase):

    def setUp(self):
        self.pedido_repo_mock = Mock()
        self.usuario_repo_mock = Mock()
        self.email_mock = Mock()
        self.notificador = NotificarStatusPedidoUseCase(
            self.pedido_repo_mock, self.usuario_repo_mock, self.email_mock
        )
        self.use_case = AtualizarStatusPedidoUseCase(
            self.pedido_repo_mock,
            MaquinaEstadosPedido(self.pedido_repo_mock),
            self.notificador,
        )

    def test_atualiza_e_envia_email(self):
        pedido = criar_pedido('pagamento_confirmado')
        self.pedido_repo_mock.buscar_por_id.return_value = pedido
        self.pedido_repo_mock.atualizar_status.return_value = criar_pedido('em_separacao')
        usuario = Usuario(email='cliente@example.com', id='usuario-1', nome_completo='Ana Souza')
        self.usuario_repo_mock.buscar_por_id.return_value = usuario

        self.use_case.executar('pedido-1', 'em_separacao', 'Separando')

        self.email_mock.enviar_status_pedido.assert_called_once()
        args = self.email_mock.enviar_status_pedido.call_args[0]
        self.assertEqual(args[2], 'Em Separação')
        self.assertEqual(args[3], 'Separando')

    def test_falha_no_email_nao_desfaz_status(self):
        """
        Cenário: Usuário sem e-mail; o status é atualizado mesmo assim.
        """
        self.pedido_repo_mock.buscar_por_id.return_value = criar_pedido('pagamento_confirmado')
        self.pedido_repo_mock.atualizar_status.return_value = criar_pedido('em_separacao')
        self.usuario_repo_mock.buscar_por_id.return_value = None

        pedido = self.use_case.executar('pedido-1', 'em_separacao')

        self.assertEqual(pedido.status, 'em_separacao')
        self.email_mock.enviar_status_pedido.assert_not_called()

    def test_pedido_inexistente(self):
        self.pedido_repo_mock.buscar_por_id.return_value = None

        with self.assertRaises(PedidoNaoEncontradoError):
            self.use_case.executar('nao-existe', 'cancelado')


# ====================================================================
# PIX
# ====================================================================
class TestGerarPix(unittest.TestCase):

    def setUp(self):
        self.config_repo_mock = Mock()
        self.transacao_repo_mock = Mock()
        self.gateway_mock = Mock()
        self.use_case = GerarPixUseCase(
            self.config_repo_mock, self.transacao_repo_mock, self.gateway_mock,
            expiracao_segundos=3600, relogio=lambda: AGORA,
        )

    def test_gera_pix_e_registra_transacao(self):
        self.config_repo_mock.obter_pagamento.return_value = ConfiguracaoPagamento('re_1', 'sk_1')
        self.gateway_mock.criar_cobranca_pix.return_value = CobrancaPix('or_1', '000201PIX', 'https://qr/1.png')

        resposta = self.use_case.executar(Decimal('150.00'), 'Entrada', 'usuario-1', pedido_id='pedido-1')

        self.assertEqual(resposta['qr_code'], '000201PIX')
        self.assertEqual(resposta['expires_at'], (AGORA + timedelta(hours=1)).isoformat())
        transacao = self.transacao_repo_mock.salvar.call_args[0][0]
        self.assertEqual(transacao.pix_copia_cola, '000201PIX')
        self.assertEqual(transacao.status, 'pendente')
        self.assertEqual(transacao.tipo, 'entrada')

    def test_sem_configuracao_falha(self):
        self.config_repo_mock.obter_pagamento.return_value = None

        with self.assertRaises(ConfiguracaoNaoEncontradaError):
            self.use_case.executar(Decimal('10'), 'x', 'usuario-1')

        self.gateway_mock.criar_cobranca_pix.assert_not_called()


class TestCancelarPixExpirados(unittest.TestCase):

    def setUp(self):
        self.transacao_repo_mock = Mock()
        self.pedido_repo_mock = Mock()
        self.use_case = CancelarPixExpiradosUseCase(
            self.transacao_repo_mock, self.pedido_repo_mock,
            MaquinaEstadosPedido(self.pedido_repo_mock), minutos=30, relogio=lambda: AGORA,
        )

    def test_nenhuma_transacao(self):
        self.transacao_repo_mock.listar_pix_pendentes_criados_antes.return_value = []

        resultado = self.use_case.executar()

        self.assertEqual(resultado['cancelled'], 0)
        self.transacao_repo_mock.listar_pix_pendentes_criados_antes.assert_called_once_with(
            AGORA - timedelta(minutes=30)
        )

    def test_cancela_transacao_e_pedido_em_analise(self):
        """
        Cenário: Uma transação ligada a pedido em análise e outra a pedido já confirmado.
        Só o pedido em análise é cancelado; as duas transações são canceladas.
        """
        self.transacao_repo_mock.listar_pix_pendentes_criados_antes.return_value = [
            Transacao(id='t1', usuario_id='u', tipo='entrada', valor=Decimal('1'), pedido_id='p1'),
            Transacao(id='t2', usuario_id='u', tipo='pagamento', valor=Decimal('1'), pedido_id='p2'),
        ]
        self.pedido_repo_mock.buscar_por_id.side_effect = lambda pid: (
            criar_pedido('em_analise', id='p1') if pid == 'p1' else criar_pedido('pagamento_confirmado', id='p2')
        )

        resultado = self.use_case.executar()

        self.assertEqual(resultado, {'message': 'Processamento concluído', 'cancelled': 1, 'processed': 2})
        self.transacao_repo_mock.atualizar_status.assert_has_calls([call('t1', 'cancelado'), call('t2', 'cancelado')])
        self.pedido_repo_mock.atualizar_status.assert_called_once_with(
            'p1', 'cancelado', observacao=CancelarPixExpiradosUseCase.OBSERVACAO, codigo_rastreio=None
        )


# ====================================================================
# WEBHOOK PAGAR.ME
# ====================================================================
class TestProcessarWebhookPagarme(unittest.TestCase):

    SECRET = 'sk_test_123'

    def setUp(self):
        self.config_repo_mock = Mock()
        self.transacao_repo_mock = Mock()
        self.analise_repo_mock = Mock()
        self.pedido_repo_mock = Mock()
        self.log_repo_mock = Mock()
        self.gateway_mock = Mock()

        self.configuracao = ConfiguracaoPagamento(recipient_id='re_123', secret_key=self.SECRET)
        self.config_repo_mock.obter_pagamento.return_value = self.configuracao

        self.use_case = ProcessarWebhookPagarmeUseCase(
            config_repo=self.config_repo_mock,
            transacao_repo=self.transacao_repo_mock,
            analise_repo=self.analise_repo_mock,
            pedido_repo=self.pedido_repo_mock,
            log_repo=self.log_repo_mock,
            gateway=self.gateway_mock,
            maquina=MaquinaEstadosPedido(self.pedido_repo_mock),
            relogio=lambda: AGORA,
        )

    def corpo(self, tipo='order.paid', qr_code='000201PIX', paid_amount=100000) -> bytes:
        evento = {
            'type': tipo,
            'data': {
                'id': 'or_1',
                'amount': paid_amount,
                'customer': {'id': 'cus_1'},
                'charges': [{'paid_amount': paid_amount, 'last_transaction': {'qr_code': qr_code}}],
            },
        }
        return json.dumps(evento).encode('utf-8')

    def assinar(self, corpo: bytes) -> str:
        return 'sha256=' + hmac.new(self.SECRET.encode(), corpo, hashlib.sha256).hexdigest()

    def transacao(self, **kwargs) -> Transacao:
        dados = dict(id='t1', usuario_id='usuario-1', tipo='pagamento', valor=Decimal('1000.00'),
                     pedido_id='pedido-1', pix_copia_cola='000201PIX')
        dados.update(kwargs)
        return Transacao(**dados)

    def test_assinatura_invalida_nao_altera_nada(self):
        """
        Cenário: Assinatura adulterada é rejeitada antes de qualquer efeito.
        """
        corpo = self.corpo()

        with self.assertRaises(AssinaturaInvalidaError):
            self.use_case.executar(corpo, 'sha256=deadbeef')

        self.transacao_repo_mock.buscar_por_pix.assert_not_called()
        self.transacao_repo_mock.marcar_como_paga.assert_not_called()

    def test_assinatura_nao_ascii_rejeitada(self):
        with self.assertRaises(AssinaturaInvalidaError):
            self.use_case.executar(self.corpo(), 'sha256=é')

        self.transacao_repo_mock.buscar_por_pix.assert_not_called()

    def test_pagamento_confirma_pedido(self):
        """
        Cenário: PIX de pagamento à vista pago; transação marcada e pedido confirmado.
        """
        # ARRANGE
        corpo = self.corpo()
        self.transacao_repo_mock.buscar_por_pix.return_value = self.transacao()
        self.transacao_repo_mock.marcar_como_paga.return_value = self.transacao(status='pago')
        self.pedido_repo_mock.buscar_por_id.return_value = criar_pedido('em_analise')

        # ACT
        resposta = self.use_case.executar(corpo, self.assinar(corpo))

        # ASSERT
        self.assertEqual(resposta, {'success': True, 'message': 'Webhook processado'})
        self.transacao_repo_mock.marcar_como_paga.assert_called_once_with('t1', AGORA)
        self.pedido_repo_mock.atualizar_status.assert_called_once_with(
            'pedido-1', 'pagamento_confirmado',
            observacao='Pagamento PIX confirmado. Pedido faturado.', codigo_rastreio=None,
        )
        metadados = self.log_repo_mock.registrar.call_args.kwargs['metadados']
        self.assertEqual(metadados['event'], 'order.paid')
        self.assertTrue(metadados['signature_valid'])

    def test_evento_repetido_e_idempotente(self):
        """
        Cenário: O mesmo evento chega duas vezes; a segunda não gera efeitos.
        """
        self.transacao_repo_mock.buscar_por_pix.return_value = self.transacao(status='pago')

        self.use_case.executar(self.corpo())

        self.transacao_repo_mock.marcar_como_paga.assert_not_called()
        self.transacao_repo_mock.criar_em_lote.assert_not_called()
        self.pedido_repo_mock.atualizar_status.assert_not_called()

    def test_entrada_gera_24_parcelas(self):
        """
        Cenário: Entrada de parcelamento paga; 24 parcelas com juros compostos de 2% a.m.
        """
        entrada = self.transacao(tipo='entrada', valor=Decimal('1000.00'))
        self.transacao_repo_mock.buscar_por_pix.return_value = entrada
        self.transacao_repo_mock.marcar_como_paga.return_value = self.transacao(
            tipo='entrada', valor=Decimal('1000.00'), status='pago'
        )
        self.analise_repo_mock.buscar_mais_recente.return_value = AnaliseCredito(
            usuario_id='usuario-1', valor_solicitado=Decimal('5000'),
            valor_aprovado=Decimal('5000.00'), percentual_aprovado=Decimal('100'),
        )
        self.pedido_repo_mock.buscar_por_id.return_value = criar_pedido('em_analise')

        self.use_case.executar(self.corpo())

        parcelas = self.transacao_repo_mock.criar_em_lote.call_args[0][0]
        self.assertEqual(len(parcelas), 24)
        self.assertEqual(parcelas[0].valor, Decimal('268.07'))
        self.assertEqual(parcelas[0].parcela_numero, 1)
        self.assertEqual(parcelas[0].data_vencimento, AGORA + timedelta(days=30))
        self.assertEqual(parcelas[23].data_vencimento, AGORA + timedelta(days=720))
        self.assertTrue(all(p.tipo == 'parcela' and p.status == 'pendente' for p in parcelas))
        self.pedido_repo_mock.atualizar_status.assert_called_once()

    def test_entrada_sem_valor_financiado_nao_gera_parcelas(self):
        entrada = self.transacao(tipo='entrada', valor=Decimal('5000.00'))
        analise = AnaliseCredito(
            usuario_id='usuario-1', valor_solicitado=Decimal('5000'),
            valor_aprovado=Decimal('5000.00'), percentual_aprovado=Decimal('100'),
        )

        self.assertEqual(self.use_case.gerar_parcelas(entrada, analise, AGORA), [])

    def test_saque_automatico_usa_valor_pago(self):
        self.configuracao.auto_saque_habilitado = True
        self.transacao_repo_mock.buscar_por_pix.return_value = self.transacao(pedido_id=None)
        self.transacao_repo_mock.marcar_como_paga.return_value = self.transacao(pedido_id=None, status='pago')
        self.gateway_mock.criar_transferencia.return_value = {'id': 'tr_1'}

        self.use_case.executar(self.corpo(paid_amount=12345))

        self.gateway_mock.criar_transferencia.assert_called_once_with(self.configuracao, Decimal('123.45'))

    def test_falha_no_saque_nao_interrompe_webhook(self):
        self.configuracao.auto_saque_habilitado = True
        self.transacao_repo_mock.buscar_por_pix.return_value = self.transacao(pedido_id=None)
        self.transacao_repo_mock.marcar_como_paga.return_value = self.transacao(pedido_id=None, status='pago')
        self.gateway_mock.criar_transferencia.side_effect = PagamentoFalhouError('saldo insuficiente')

        resposta = self.use_case.executar(self.corpo())

        self.assertTrue(resposta['success'])

    def test_pedido_cancelado_nao_e_reaberto(self):
        """
        Cenário: PIX pago depois que o pedido já foi cancelado por expiração.
        """
        self.transacao_repo_mock.buscar_por_pix.return_value = self.transacao()
        self.transacao_repo_mock.marcar_como_paga.return_value = self.transacao(status='pago')
        self.pedido_repo_mock.buscar_por_id.return_value = criar_pedido('cancelado')

        self.use_case.executar(self.corpo())

        self.pedido_repo_mock.atualizar_status.assert_not_called()

    def test_evento_sem_qr_code(self):
        with self.assertRaises(DadosInvalidosError):
            self.use_case.executar(self.corpo(qr_code=None))

    def test_transacao_inexistente(self):
        self.transacao_repo_mock.buscar_por_pix.return_value = None

        with self.assertRaises(TransacaoNaoEncontradaError):
            self.use_case.executar(self.corpo())

    def test_evento_nao_relacionado_e_ignorado(self):
        resposta = self.use_case.executar(self.corpo(tipo='order.created'))

        self.assertTrue(resposta['success'])
        self.transacao_repo_mock.buscar_por_pix.assert_not_called()

    def test_erro_inesperado_e_registrado(self):
        self.transacao_repo_mock.buscar_por_pix.side_effect = RuntimeError('conexão perdida')

        with self.assertRaises(RuntimeError):
            self.use_case.executar(self.corpo())

        kwargs = self.log_repo_mock.registrar.call_args.kwargs
        self.assertEqual(kwargs['status_resposta'], 500)
        self.assertEqual(kwargs['metadados'], {'type': 'webhook_error'})


# ====================================================================
# VERIFICAÇÃO DE CARTÃO
# ====================================================================
class TestVerificarCartao(unittest.TestCase):

    def setUp(self):
        self.config_repo_mock = Mock()
        self.usuario_repo_mock = Mock()
        self.tentativa_repo_mock = Mock()
        self.gateway_mock = Mock()
        self.config_repo_mock.obter_pagamento.return_value = ConfiguracaoPagamento('re_1', 'sk_1')
        self.usuario_repo_mock.buscar_perfil_cobranca.return_value = {'telefone': '81999990000'}
        self.use_case = VerificarCartaoUseCase(
            self.config_repo_mock, self.usuario_repo_mock, self.tentativa_repo_mock, self.gateway_mock
        )
        self.cartao = {
            'card_number': '4111 1111 1111 1111',
            'card_holder_name': 'ANA SOUZA',
            'card_expiration_date': '12/30',
            'card_cvv': '123',
        }

    def test_cobra_e_estorna(self):
        self.gateway_mock.cobrar_cartao.return_value = CobrancaCartao('or_1', 'ch_1', 'paid')
        self.gateway_mock.estornar_cobranca.return_value = {'id': 'rf_1'}

        resposta = self.use_case.executar('usuario-1', self.cartao, Decimal('1.00'))

        self.assertTrue(resposta['success'])
        self.assertEqual(resposta['refund_id'], 'rf_1')
        kwargs = self.tentativa_repo_mock.registrar.call_args.kwargs
        self.assertEqual(kwargs['numero_mascarado'], '************1111')
        self.assertNotIn('123', kwargs.values())

    def test_cartao_recusado(self):
        self.gateway_mock.cobrar_cartao.return_value = CobrancaCartao('or_1', 'ch_1', 'failed', 'Saldo insuficiente')

        with self.assertRaises(CartaoNaoAutorizadoError) as ctx:
            self.use_case.executar('usuario-1', self.cartao, Decimal('1.00'))

        self.assertEqual(ctx.exception.message, 'Saldo insuficiente')
        self.gateway_mock.estornar_cobranca.assert_not_called()

    def test_estorno_falhou(self):
        self.gateway_mock.cobrar_cartao.return_value = CobrancaCartao('or_1', 'ch_1', 'paid')
        self.gateway_mock.estornar_cobranca.side_effect = PagamentoFalhouError('timeout')

        with self.assertRaises(EstornoFalhouError) as ctx:
            self.use_case.executar('usuario-1', self.cartao, Decimal('1.00'))

        self.assertEqual(ctx.exception.charge_id, 'ch_1')


# ====================================================================
# ADMINISTRAÇÃO
# ====================================================================
class TestAdministracao(unittest.TestCase):

    def setUp(self):
        self.config_repo_mock = Mock()
        self.config_repo_mock.obter_senha_admin.return_value = None
        self.usuario_repo_mock = Mock()
        self.limpeza_repo_mock = Mock()
        self.limpeza_repo_mock.apagar_tabela.return_value = 0
        self.verificador = VerificadorSenhaAdmin(self.config_repo_mock, senha_padrao='segredo')

    def test_senha_configurada_tem_prioridade(self):
        self.config_repo_mock.obter_senha_admin.return_value = 'outra'

        with self.assertRaises(SenhaAdminInvalidaError):
            self.verificador.verificar('segredo')
        self.verificador.verificar('outra')

    def test_limpar_dados_senha_errada(self):
        use_case = LimparDadosUseCase(self.verificador, self.limpeza_repo_mock, self.usuario_repo_mock)

        with self.assertRaises(SenhaAdminInvalidaError):
            use_case.executar('errada')

        self.limpeza_repo_mock.apagar_tabela.assert_not_called()

    def test_limpar_dados_respeita_ordem(self):
        """
        Cenário: Tabelas filhas são apagadas antes das tabelas pai; depois os usuários.
        """
        self.limpeza_repo_mock.listar_ids_usuarios.return_value = ['u1', 'u2']
        use_case = LimparDadosUseCase(self.verificador, self.limpeza_repo_mock, self.usuario_repo_mock)

        resposta = use_case.executar('segredo')

        tabelas = [c.args[0] for c in self.limpeza_repo_mock.apagar_tabela.call_args_list]
        self.assertEqual(tabelas, list(LimparDadosUseCase.ORDEM_LIMPEZA))
        self.assertLess(tabelas.index('itens_pedido'), tabelas.index('pedidos'))
        self.usuario_repo_mock.deletar.assert_has_calls([call('u1'), call('u2')])
        self.assertEqual(resposta['message'], 'Todos os dados foram apagados com sucesso')

    def test_deletar_usuario(self):
        self.usuario_repo_mock.buscar_por_id.return_value = Usuario(email='a@b.com', id='u1')
        use_case = DeletarUsuarioUseCase(self.verificador, self.usuario_repo_mock)

        resposta = use_case.executar('u1', 'segredo')

        self.assertEqual(resposta['message'], 'Usuário deletado com sucesso')
        self.usuario_repo_mock.deletar.assert_called_once_with('u1')

    def test_deletar_todos_confirmacao_errada(self):
        use_case = DeletarTodosUsuariosUseCase(self.verificador, self.usuario_repo_mock)

        with self.assertRaises(DadosInvalidosError):
            use_case.executar('deletar', 'segredo')

    def test_deletar_todos_sem_clientes(self):
        self.usuario_repo_mock.listar_por_papel.return_value = []
        use_case = DeletarTodosUsuariosUseCase(self.verificador, self.usuario_repo_mock)

        resposta = use_case.executar('DELETAR TODOS', 'segredo')

        self.assertEqual(resposta['deletedCount'], 0)

    def test_deletar_todos_conta_clientes(self):
        self.usuario_repo_mock.listar_por_papel.return_value = [
            Usuario(email='a@b.com', id='u1'), Usuario(email='c@d.com', id='u2')
        ]
        use_case = DeletarTodosUsuariosUseCase(self.verificador, self.usuario_repo_mock)

        resposta = use_case.executar('DELETAR TODOS', 'segredo')

        self.assertEqual(resposta['deletedCount'], 2)
        self.assertEqual(resposta['totalUsers'], 2)
        self.assertNotIn('errors', resposta)

    def test_listar_usuarios_apenas_admin(self):
        use_case = ListarUsuariosUseCase(self.usuario_repo_mock)

        with self.assertRaises(AcessoNegadoError):
            use_case.executar(Usuario(email='a@b.com', papel='cliente'))

    def test_listar_usuarios(self):
        self.usuario_repo_mock.listar_todos.return_value = [
            Usuario(email='a@b.com', id='u1', nome_completo='Ana', data_criacao=AGORA)
        ]
        self.usuario_repo_mock.listar_verificacoes.return_value = []
        use_case = ListarUsuariosUseCase(self.usuario_repo_mock)

        resposta = use_case.executar(Usuario(email='admin@b.com', papel='admin'))

        self.assertEqual(resposta['users'][0]['email'], 'a@b.com')
        self.assertEqual(resposta['users'][0]['created_at'], AGORA.isoformat())

    def test_salvar_configuracao_exige_campos(self):
        use_case = GerenciarConfiguracaoPagamentoUseCase(self.verificador, self.config_repo_mock)

        with self.assertRaises(DadosInvalidosError):
            use_case.salvar('segredo', {'recipient_id': 're_1'})

    def test_salvar_configuracao(self):
        self.config_repo_mock.salvar_pagamento.side_effect = lambda c: c
        use_case = GerenciarConfiguracaoPagamentoUseCase(self.verificador, self.config_repo_mock)

        configuracao = use_case.salvar('segredo', {
            'recipient_id': 're_1', 'secret_key': 'sk_1', 'auto_withdraw_enabled': True
        })

        self.assertTrue(configuracao.auto_saque_habilitado)
        self.assertIsNone(configuracao.senha_saque)


# ====================================================================
# VISITAS E E-MAILS
# ====================================================================
class TestRegistrarVisita(unittest.TestCase):

    UA_IPHONE = (
        'Mozilla/5.0 (iPhone; CPU iPhone OS 17_0 like Mac OS X) AppleWebKit/605.1.15 '
        '(KHTML, like Gecko) Version/17.0 Mobile/15E148 Safari/604.1'
    )

    def setUp(self):
        self.visita_repo_mock = Mock()
        self.visita_repo_mock.salvar.side_effect = lambda r: r
        self.geo_mock = Mock()
        self.geo_mock.localizar.return_value = ('Brazil', 'Recife')
        self.use_case = RegistrarVisitaUseCase(self.visita_repo_mock, self.geo_mock)

    def test_ip_publico_e_geolocalizado(self):
        registro = self.use_case.executar('200.1.2.3', self.UA_IPHONE, pagina_visitada='/')

        self.assertEqual((registro.pais, registro.cidade), ('Brazil', 'Recife'))
        self.assertEqual(registro.tipo_dispositivo, 'Mobile')
        self.assertEqual(registro.navegador, 'Safari')
        self.assertFalse(registro.registrado)

    def test_ip_privado_nao_consulta_geolocalizacao(self):
        registro = self.use_case.executar('192.168.0.10', '')

        self.geo_mock.localizar.assert_not_called()
        self.assertIsNone(registro.pais)

    def test_extrair_ip(self):
        self.assertEqual(RegistrarVisitaUseCase.extrair_ip('1.1.1.1, 10.0.0.1', None), '1.1.1.1')
        self.assertEqual(RegistrarVisitaUseCase.extrair_ip(None, '8.8.8.8'), '8.8.8.8')
        self.assertEqual(RegistrarVisitaUseCase.extrair_ip(None, None), 'Desconhecido')


class TestRecuperarSenha(unittest.TestCase):

    def test_email_obrigatorio(self):
        with self.assertRaises(DadosInvalidosError):
            RecuperarSenhaUseCase(Mock()).executar('')

    def test_envia_email(self):
        email_mock = Mock()

        resposta = RecuperarSenhaUseCase(email_mock).executar('a@b.com', 'https://loja/reset')

        email_mock.enviar_recuperacao_senha.assert_called_once_with('a@b.com', 'https://loja/reset')
        self.assertTrue(resposta['success'])


# ====================================================================
# UTILITÁRIOS
# ====================================================================
class TestUtils(unittest.TestCase):

    def test_cpf(self):
        self.assertEqual(formatar_cpf('52998224725'), '529.982.247-25')
        self.assertEqual(formatar_cpf('5299'), '529.9')
        self.assertTrue(validar_cpf('529.982.247-25'))
        self.assertFalse(validar_cpf('529.982.247-26'))
        self.assertFalse(validar_cpf('111.111.111-11'))

    def test_telefone(self):
        self.assertEqual(formatar_telefone('81999990000'), '(81) 99999-0000')
        self.assertEqual(formatar_telefone('8133334444'), '(81) 3333-4444')
        self.assertTrue(validar_telefone('(81) 99999-0000'))
        self.assertFalse(validar_telefone('9999-0000'))

    def test_cartao(self):
        self.assertEqual(formatar_numero_cartao('4111111111111111'), '4111 1111 1111 1111')
        self.assertEqual(formatar_validade_cartao('1230'), '12/30')
        self.assertEqual(mascarar_numero_cartao('4111 1111 1111 1234'), '************1234')

    def test_validade_cartao(self):
        hoje = datetime(2025, 6, 15)
        self.assertTrue(validar_validade_cartao('06/25', hoje))
        self.assertFalse(validar_validade_cartao('05/25', hoje))
        self.assertFalse(validar_validade_cartao('13/30', hoje))
        self.assertFalse(validar_validade_cartao('1/3', hoje))

    def test_codigo_rastreio(self):
        codigo = gerar_codigo_rastreio(random.Random(42))

        self.assertRegex(codigo, re.compile(r'^[A-Z]{2}\d{9}BR$'))

    def test_user_agent(self):
        ua_edge = ('Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 '
                   '(KHTML, like Gecko) Chrome/120.0 Safari/537.36 Edg/120.0')
        agente = interpretar_user_agent(ua_edge)

        self.assertEqual(agente['navegador'], 'Edge')
        self.assertEqual(agente['sistema_operacional'], 'Windows')
        self.assertEqual(agente['tipo_dispositivo'], 'Desktop')
        self.assertEqual(interpretar_user_agent('')['navegador'], 'Desconhecido')


if __name__ == '__main__':
    unittest.main()
