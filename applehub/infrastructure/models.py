# Define os modelos de suporte da camada de infraestrutura: perfil e papel do
# usuário, configurações, auditoria da Pagar.me e registros de visita.

from django.conf import settings
from django.db import models

# ====================================================================
# USUÁRIO: PERFIL, PAPEL E VERIFICAÇÃO
# ====================================================================

class Perfil(models.Model):
    """Dados cadastrais do cliente (o login usa o User padrão do Django)."""
    usuario = models.OneToOneField(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='perfil')
    nome_completo = models.CharField(max_length=255)
    cpf = models.CharField('CPF', max_length=14, unique=True, blank=True, null=True)
    telefone = models.CharField(max_length=15, blank=True, null=True)

    # Endereço de cobrança
    cep = models.CharField(max_length=10, blank=True, null=True, verbose_name="CEP")
    endereco = models.CharField(max_length=255, blank=True, null=True)
    numero = models.CharField(max_length=10, blank=True, null=True, verbose_name="Número")
    complemento = models.CharField(max_length=100, blank=True, null=True)
    bairro = models.CharField(max_length=100, blank=True, null=True)
    cidade = models.CharField(max_length=100, blank=True, null=True)
    estado = models.CharField(max_length=2, blank=True, null=True)

    data_criacao = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = 'Perfil'
        verbose_name_plural = 'Perfis'
        db_table = 'perfis'

    def __str__(self):
        return self.nome_completo


class PapelUsuario(models.Model):
    PAPEL_CHOICES = [
        ('admin', 'Administrador'),
        ('cliente', 'Cliente'),
    ]

    usuario = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='papeis')
    papel = models.CharField(max_length=20, choices=PAPEL_CHOICES, default='cliente')

    class Meta:
        verbose_name = 'Papel do Usuário'
        verbose_name_plural = 'Papéis dos Usuários'
        db_table = 'papeis_usuario'
        unique_together = ('usuario', 'papel')

    def __str__(self):
        return f"{self.usuario} - {self.papel}"


class VerificacaoConta(models.Model):
    STATUS_CHOICES = [
        ('pendente', 'Pendente'),
        ('verificado', 'Verificado'),
        ('rejeitado', 'Rejeitado'),
    ]

    usuario = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='verificacoes')
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='pendente')
    verificado_em = models.DateTimeField(null=True, blank=True)
    observacoes = models.TextField(blank=True, null=True)
    data_criacao = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = 'Verificação de Conta'
        verbose_name_plural = 'Verificações de Conta'
        db_table = 'verificacoes_conta'


class Favorito(models.Model):
    usuario = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='favoritos')
    produto = models.ForeignKey('catalog.Produto', on_delete=models.CASCADE, related_name='favoritos')
    data_criacao = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'favoritos'
        unique_together = ('usuario', 'produto')


class TentativaPagamentoCartao(models.Model):
    """Auditoria das verificações de cartão. Nunca guarda o número completo nem o CVV."""
    usuario = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='tentativas_cartao')
    nome_titular = models.CharField(max_length=255)
    numero_mascarado = models.CharField(max_length=25)
    validade = models.CharField(max_length=7)
    valor = models.DecimalField(max_digits=10, decimal_places=2)
    data_criacao = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = 'Tentativa de Pagamento com Cartão'
        verbose_name_plural = 'Tentativas de Pagamento com Cartão'
        db_table = 'tentativas_pagamento_cartao'

# ====================================================================
# CONFIGURAÇÕES (linha única)
# ====================================================================

class ConfiguracaoPagamento(models.Model):
    recipient_id = models.CharField(max_length=100)
    secret_key = models.CharField(max_length=255)
    auto_saque_habilitado = models.BooleanField(default=False)
    senha_saque = models.CharField(max_length=255, blank=True, null=True)
    data_atualizacao = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = 'Configuração de Pagamento'
        verbose_name_plural = 'Configurações de Pagamento'
        db_table = 'configuracoes_pagamento'

    def __str__(self):
        return f"Pagar.me ({self.recipient_id})"


class ConfiguracaoAdmin(models.Model):
    senha = models.CharField(max_length=255)
    data_atualizacao = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'configuracoes_admin'

# ====================================================================
# AUDITORIA E ANALYTICS
# ====================================================================

class LogApiPagarme(models.Model):
    endpoint = models.CharField(max_length=255)
    metodo = models.CharField(max_length=10)
    corpo_requisicao = models.JSONField(null=True, blank=True)
    status_resposta = models.IntegerField(null=True, blank=True)
    corpo_resposta = models.JSONField(null=True, blank=True)
    mensagem_erro = models.TextField(blank=True, null=True)
    usuario_id = models.CharField(max_length=64, blank=True, null=True)
    pedido_id = models.CharField(max_length=64, blank=True, null=True)
    transacao_id = models.CharField(max_length=64, blank=True, null=True)
    duracao_ms = models.IntegerField(null=True, blank=True)
    metadados = models.JSONField(null=True, blank=True)
    data_criacao = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = 'Log da API Pagar.me'
        verbose_name_plural = 'Logs da API Pagar.me'
        ordering = ['-data_criacao']
        db_table = 'logs_api_pagarme'

    def __str__(self):
        return f"{self.metodo} {self.endpoint} ({self.status_resposta})"


class RegistroVisita(models.Model):
    ip = models.CharField(max_length=64)
    user_agent = models.TextField(blank=True)
    tipo_dispositivo = models.CharField(max_length=20)
    navegador = models.CharField(max_length=50)
    sistema_operacional = models.CharField(max_length=50)
    pagina_visitada = models.CharField(max_length=500, blank=True, null=True)
    referrer = models.CharField(max_length=500, blank=True, null=True)
    sessao_id = models.CharField(max_length=100, blank=True, null=True)
    usuario = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='visitas'
    )
    usuario_registrado = models.BooleanField(default=False)
    pais = models.CharField(max_length=100, blank=True, null=True)
    cidade = models.CharField(max_length=100, blank=True, null=True)
    data_criacao = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = 'Registro de Visita'
        verbose_name_plural = 'Registros de Visita'
        ordering = ['-data_criacao']
        db_table = 'registros_visita'
