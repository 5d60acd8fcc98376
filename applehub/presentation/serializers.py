from decimal import Decimal

from rest_framework import serializers

from applehub.core.entities import TIPOS_OPERACAO_OFFLINE, TIPOS_PAGAMENTO


# ====================================================================
# SERIALIZERS PARA O CARRINHO
# ====================================================================

class ProdutoSerializer(serializers.Serializer):
    """Snapshot do produto aninhado no item do carrinho (entidade, não Model)."""
    id = serializers.CharField()
    nome = serializers.CharField()
    preco_vista = serializers.DecimalField(max_digits=10, decimal_places=2)
    estoque = serializers.IntegerField()
    ativo = serializers.BooleanField()
    imagem_url = serializers.CharField(allow_null=True)


class ItemCarrinhoSerializer(serializers.Serializer):
    """
    Serializer do item do carrinho.
    É o mesmo formato consumido pelo cliente HTTP do carrinho remoto.
    """
    id = serializers.CharField()
    produto_id = serializers.CharField()
    usuario_id = serializers.CharField(allow_null=True)
    quantidade = serializers.IntegerField()
    produto = ProdutoSerializer(allow_null=True)
    subtotal = serializers.DecimalField(max_digits=12, decimal_places=2)


class AdicionarItemSerializer(serializers.Serializer):
    produto_id = serializers.CharField()
    quantidade = serializers.IntegerField(min_value=1, default=1)


class AtualizarQuantidadeSerializer(serializers.Serializer):
    # Zero ou negativo remove o item
    quantidade = serializers.IntegerField()


class OperacaoOfflineSerializer(serializers.Serializer):
    id = serializers.CharField(required=False, allow_blank=True)
    tipo = serializers.ChoiceField(choices=TIPOS_OPERACAO_OFFLINE)
    dados = serializers.DictField(required=False, default=dict)
    timestamp = serializers.IntegerField(required=False)


class SincronizarCarrinhoSerializer(serializers.Serializer):
    """
    Sincronização de login/reconexão:
    `itens` (carrinho de convidado a mesclar) e `fila` (operações offline, FIFO).
    """
    itens = AdicionarItemSerializer(many=True, required=False, default=list)
    fila = OperacaoOfflineSerializer(many=True, required=False, default=list)


# SERIALIZERS PARA CHECKOUT E PEDIDOS
# ====================================================================
class CheckoutSerializer(serializers.Serializer):
    """
    Serializer para a validação dos dados de checkout.
    """
    tipo_pagamento = serializers.ChoiceField(choices=TIPOS_PAGAMENTO)
    frete = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=Decimal('0'), default=Decimal('0'))
    parcelas = serializers.IntegerField(min_value=1, required=False, allow_null=True)

    # Endereço de entrega (snapshot gravado no pedido)
    cep = serializers.CharField(max_length=10)
    rua = serializers.CharField(max_length=255)
    numero = serializers.CharField(max_length=20)
    complemento = serializers.CharField(max_length=100, required=False, allow_blank=True)
    bairro = serializers.CharField(max_length=100)
    cidade = serializers.CharField(max_length=100)
    estado = serializers.CharField(max_length=2)

    CAMPOS_ENDERECO = ('cep', 'rua', 'numero', 'complemento', 'bairro', 'cidade', 'estado')

    def validate(self, attrs):
        if attrs['tipo_pagamento'] == 'parcelamento_applehub' and not attrs.get('parcelas'):
            raise serializers.ValidationError({'parcelas': 'Informe o número de parcelas.'})
        return attrs

    def endereco_entrega(self) -> dict:
        return {campo: self.validated_data.get(campo, '') for campo in self.CAMPOS_ENDERECO}


class ItemPedidoSerializer(serializers.Serializer):
    produto_id = serializers.CharField(allow_null=True)
    nome_produto = serializers.CharField()
    preco_unitario = serializers.DecimalField(max_digits=10, decimal_places=2)
    quantidade = serializers.IntegerField()
    subtotal = serializers.DecimalField(max_digits=12, decimal_places=2)


class PedidoSerializer(serializers.Serializer):
    id = serializers.CharField()
    numero_pedido = serializers.CharField()
    status = serializers.CharField()
    subtotal = serializers.DecimalField(max_digits=10, decimal_places=2)
    frete = serializers.DecimalField(max_digits=10, decimal_places=2)
    total = serializers.DecimalField(max_digits=10, decimal_places=2)
    tipo_pagamento = serializers.CharField()
    parcelas = serializers.IntegerField(allow_null=True)
    valor_parcela = serializers.DecimalField(max_digits=10, decimal_places=2, allow_null=True)
    endereco_entrega = serializers.DictField()
    codigo_rastreio = serializers.CharField(allow_null=True)
    itens = ItemPedidoSerializer(many=True)


class AtualizarStatusSerializer(serializers.Serializer):
    status = serializers.CharField()
    observacao = serializers.CharField(required=False, allow_blank=True, allow_null=True)


class NotificarPedidoSerializer(serializers.Serializer):
    orderId = serializers.CharField()
    status = serializers.CharField()
    observacao = serializers.CharField(required=False, allow_blank=True, allow_null=True)

# ====================================================================
# SERIALIZERS DE PAGAMENTO
# ====================================================================

class GerarPixSerializer(serializers.Serializer):
    amount = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=Decimal('0.01'))
    description = serializers.CharField(max_length=255, required=False, default='Pagamento AppleHub')
    order_id = serializers.CharField(required=False, allow_null=True)


class VerificarCartaoSerializer(serializers.Serializer):
    card_number = serializers.CharField(max_length=25)
    card_holder_name = serializers.CharField(max_length=255)
    card_expiration_date = serializers.CharField(max_length=7, help_text="MMAA ou MM/AA")
    card_cvv = serializers.CharField(max_length=4, write_only=True)
    amount = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=Decimal('0.01'))


class ConfiguracaoPagamentoSerializer(serializers.Serializer):
    recipient_id = serializers.CharField()
    secret_key = serializers.CharField()
    auto_withdraw_enabled = serializers.BooleanField(source='auto_saque_habilitado')
    withdraw_password = serializers.CharField(source='senha_saque', allow_null=True)

# ====================================================================
# VISITAS
# ====================================================================

class RegistrarVisitaSerializer(serializers.Serializer):
    page_visited = serializers.CharField(max_length=500, required=False, allow_blank=True, allow_null=True)
    referrer = serializers.CharField(max_length=500, required=False, allow_blank=True, allow_null=True)
    session_id = serializers.CharField(max_length=100, required=False, allow_blank=True, allow_null=True)
    user_id = serializers.CharField(required=False, allow_blank=True, allow_null=True)
