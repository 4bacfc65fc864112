"""
Modelos de dados comuns para os nós do consenso binário aleatorizado (Ben-Or).
"""
from enum import Enum
from typing import Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


# Valor "desconhecido" trafega como "?" na rede
UNKNOWN = "?"

Bit = Literal[0, 1]
Value = Union[Literal[0, 1], Literal["?"]]

DECISIVE_VALUES = (0, 1)


class MessageType(str, Enum):
    """Tipos de mensagens do protocolo."""
    PROPOSE = "PROPOSE"
    VOTE = "VOTE"


class Phase(str, Enum):
    """Fases da máquina de estados de um nó."""
    INERT = "INERT"  # nó defeituoso, nunca transiciona
    IDLE = "IDLE"
    RUNNING = "RUNNING"
    DECIDED = "DECIDED"
    KILLED = "KILLED"


class RejectionReason(str, Enum):
    """Motivos de rejeição de comandos no nó."""
    FAULTY = "faulty"
    KILLED = "killed"
    ALREADY_RUNNING = "already-running"


class ConsensusMessage(BaseModel):
    """Mensagem PROPOSE ou VOTE trocada entre os nós. Imutável."""
    model_config = ConfigDict(frozen=True)

    kind: MessageType
    sender: int = Field(ge=0)
    round: int = Field(ge=0)
    value: Value

    @field_validator("value", mode="before")
    @classmethod
    def reject_bool(cls, value):
        # bool é subclasse de int: true/false não são bits do protocolo
        if isinstance(value, bool):
            raise ValueError("value deve ser 0, 1 ou '?', não booleano")
        return value


class NodeState(BaseModel):
    """
    Estado de consenso de um nó.

    Em um nó defeituoso value, decided e round são sempre None.
    """
    killed: bool = False
    value: Optional[Value] = None
    decided: Optional[bool] = None
    round: Optional[int] = None


class CommandResult(BaseModel):
    """Resultado de um comando (start, stop, message) enviado ao nó."""
    accepted: bool
    message: str
    reason: Optional[RejectionReason] = None


class HealthResponse(BaseModel):
    """Modelo para resposta de verificação de saúde."""
    status: str = "healthy"
    timestamp: float
