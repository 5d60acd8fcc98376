# applehub/core/utils.py
"""
Funções puras de formatação e validação (CPF, telefone, cartão),
geração de código de rastreio e utilidades de data no fuso de Brasília.
"""
import random
import re
import string
from datetime import datetime
from typing import Dict, Optional
from zoneinfo import ZoneInfo

FUSO_BRASILIA = ZoneInfo('America/Sao_Paulo')


def _somente_digitos(valor: str) -> str:
    return re.sub(r'\D', '', valor or '')


# ====================================================================
# CPF E TELEFONE
# ====================================================================

def formatar_cpf(valor: str) -> str:
    """Formata progressivamente como 000.000.000-00."""
    numeros = _somente_digitos(valor)[:11]
    if len(numeros) <= 3:
        return numeros
    if len(numeros) <= 6:
        return f"{numeros[:3]}.{numeros[3:]}"
    if len(numeros) <= 9:
        return f"{numeros[:3]}.{numeros[3:6]}.{numeros[6:]}"
    return f"{numeros[:3]}.{numeros[3:6]}.{numeros[6:9]}-{numeros[9:]}"


def validar_cpf(valor: str) -> bool:
    """Valida os dígitos verificadores (módulo 11)."""
    numeros = _somente_digitos(valor)
    if len(numeros) != 11 or numeros == numeros[0] * 11:
        return False

    for posicao in (9, 10):
        soma = sum(int(numeros[i]) * (posicao + 1 - i) for i in range(posicao))
        digito = (soma * 10) % 11
        if digito == 10:
            digito = 0
        if digito != int(numeros[posicao]):
            return False
    return True


def formatar_telefone(valor: str) -> str:
    """Formata como (00) 00000-0000 ou (00) 0000-0000."""
    numeros = _somente_digitos(valor)[:11]
    if len(numeros) <= 2:
        return numeros
    if len(numeros) <= 6:
        return f"({numeros[:2]}) {numeros[2:]}"
    if len(numeros) <= 10:
        return f"({numeros[:2]}) {numeros[2:6]}-{numeros[6:]}"
    return f"({numeros[:2]}) {numeros[2:7]}-{numeros[7:]}"


def validar_telefone(valor: str) -> bool:
    return len(_somente_digitos(valor)) in (10, 11)


# ====================================================================
# CARTÃO
# ====================================================================

def formatar_numero_cartao(valor: str) -> str:
    numeros = _somente_digitos(valor)[:16]
    return ' '.join(numeros[i:i + 4] for i in range(0, len(numeros), 4))


def formatar_validade_cartao(valor: str) -> str:
    numeros = _somente_digitos(valor)[:4]
    if len(numeros) <= 2:
        return numeros
    return f"{numeros[:2]}/{numeros[2:]}"


def validar_validade_cartao(valor: str, hoje: Optional[datetime] = None) -> bool:
    """Aceita MM/AA ou MMAA; o mês de validade ainda não pode ter passado."""
    numeros = _somente_digitos(valor)
    if len(numeros) != 4:
        return False

    mes, ano = int(numeros[:2]), int(numeros[2:])
    if mes < 1 or mes > 12:
        return False

    hoje = hoje or agora_brasilia()
    ano_atual = hoje.year % 100
    if ano < ano_atual:
        return False
    if ano == ano_atual and mes < hoje.month:
        return False
    return True


def mascarar_numero_cartao(valor: str) -> str:
    numeros = _somente_digitos(valor)
    if len(numeros) < 4:
        return '*' * len(numeros)
    return '*' * (len(numeros) - 4) + numeros[-4:]


# ====================================================================
# RASTREIO
# ====================================================================

def gerar_codigo_rastreio(gerador: Optional[random.Random] = None) -> str:
    """Código no formato dos Correios: AA123456789BR."""
    gerador = gerador or random.SystemRandom()
    prefixo = ''.join(gerador.choice(string.ascii_uppercase) for _ in range(2))
    numeros = gerador.randint(100000000, 999999999)
    return f"{prefixo}{numeros}BR"


# ====================================================================
# DATAS (Fuso de Brasília)
# ====================================================================

def agora_brasilia() -> datetime:
    return datetime.now(FUSO_BRASILIA)


def para_brasilia(data: datetime) -> datetime:
    if data.tzinfo is None:
        data = data.replace(tzinfo=ZoneInfo('UTC'))
    return data.astimezone(FUSO_BRASILIA)


def formatar_data_brasilia(data: datetime, com_hora: bool = True) -> str:
    local = para_brasilia(data)
    if com_hora:
        return local.strftime('%d/%m/%Y %H:%M')
    return local.strftime('%d/%m/%Y')


# ====================================================================
# USER AGENT
# ====================================================================

def interpretar_user_agent(user_agent: str) -> Dict[str, str]:
    """
    Detecta navegador, sistema operacional e tipo de dispositivo por
    busca de substrings, na ordem de precedência abaixo.
    """
    ua = user_agent or ''
    navegador = 'Desconhecido'
    sistema = 'Desconhecido'
    dispositivo = 'Desktop'

    if 'Firefox' in ua:
        navegador = 'Firefox'
    elif 'Edg' in ua:
        navegador = 'Edge'
    elif 'Chrome' in ua:
        navegador = 'Chrome'
    elif 'Safari' in ua:
        navegador = 'Safari'
    elif 'Opera' in ua or 'OPR' in ua:
        navegador = 'Opera'

    if 'Windows' in ua:
        sistema = 'Windows'
    elif 'Mac OS' in ua:
        sistema = 'macOS'
    elif 'Linux' in ua:
        sistema = 'Linux'
    elif 'Android' in ua:
        sistema = 'Android'
    elif 'iOS' in ua or 'iPhone' in ua or 'iPad' in ua:
        sistema = 'iOS'

    if 'Mobile' in ua or 'Android' in ua or 'iPhone' in ua:
        dispositivo = 'Mobile'
    elif 'Tablet' in ua or 'iPad' in ua:
        dispositivo = 'Tablet'

    return {'navegador': navegador, 'sistema_operacional': sistema, 'tipo_dispositivo': dispositivo}


def ip_privado(ip: str) -> bool:
    return ip.startswith('192.168') or ip.startswith('10.') or ip == '127.0.0.1'
