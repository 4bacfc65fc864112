import logging
import os
from typing import Any, List, Optional

logger = logging.getLogger(__name__)

TRUE_VALUES = ("true", "1", "yes")


def get_env_var(var_name: str, default: Any = None) -> Any:
    """
    Obtém uma variável de ambiente, com valor padrão opcional.

    Args:
        var_name: Nome da variável de ambiente
        default: Valor padrão caso a variável não exista

    Returns:
        Valor da variável de ambiente ou o valor padrão
    """
    return os.environ.get(var_name, default)

def get_env_str(var_name: str, default: str = "") -> str:
    """Obtém uma variável de ambiente como string."""
    return str(get_env_var(var_name, default))

def get_env_int(var_name: str, default: Optional[int] = None) -> Optional[int]:
    """
    Obtém uma variável de ambiente como inteiro.

    Valores vazios retornam o padrão; valores inválidos geram um aviso
    e também retornam o padrão.
    """
    raw = get_env_var(var_name)
    if raw is None or str(raw).strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning(f"Valor inválido para {var_name}: {raw!r}. Usando padrão {default}")
        return default

def get_env_float(var_name: str, default: Optional[float] = None) -> Optional[float]:
    """Obtém uma variável de ambiente como float."""
    raw = get_env_var(var_name)
    if raw is None or str(raw).strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning(f"Valor inválido para {var_name}: {raw!r}. Usando padrão {default}")
        return default

def get_env_bool(var_name: str, default: bool = False) -> bool:
    """Obtém uma variável de ambiente como booleano (true/1/yes)."""
    raw = get_env_var(var_name)
    if raw is None:
        return default
    return str(raw).lower() in TRUE_VALUES

def get_env_list(var_name: str, default: Optional[List[str]] = None) -> List[str]:
    """
    Obtém uma lista separada por vírgulas de uma variável de ambiente.

    Returns:
        List[str]: Itens sem espaços e sem entradas vazias
    """
    raw = get_env_var(var_name)
    if not raw:
        return list(default or [])
    return [item.strip() for item in raw.split(",") if item.strip()]

def get_debug_mode() -> bool:
    """
    Verifica se o modo de depuração está ativado.

    Returns:
        bool: True se o modo de depuração estiver ativado, False caso contrário
    """
    return get_env_bool("DEBUG", False)
