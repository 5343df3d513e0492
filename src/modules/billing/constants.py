"""Credit costs of AI operations."""

from enum import Enum
from types import MappingProxyType


class OperationKind(str, Enum):
    GENERATE_READING = "generate_reading"
    GENERATE_LISTENING = "generate_listening"
    GENERATE_WRITING = "generate_writing"
    GENERATE_SPEAKING = "generate_speaking"
    EVALUATE_SPEAKING = "evaluate_speaking"
    EVALUATE_WRITING = "evaluate_writing"
    EVALUATE_READING = "evaluate_reading"
    EVALUATE_LISTENING = "evaluate_listening"
    EXPLAIN_ANSWER = "explain_answer"


OPERATION_COSTS: MappingProxyType[OperationKind, int] = MappingProxyType(
    {
        OperationKind.GENERATE_SPEAKING: 5,
        OperationKind.GENERATE_WRITING: 5,
        OperationKind.GENERATE_LISTENING: 20,
        OperationKind.GENERATE_READING: 20,
        OperationKind.EVALUATE_SPEAKING: 15,
        OperationKind.EVALUATE_WRITING: 10,
        OperationKind.EVALUATE_READING: 0,
        OperationKind.EVALUATE_LISTENING: 0,
        OperationKind.EXPLAIN_ANSWER: 2,
    }
)


def operation_cost(operation: OperationKind) -> int:
    return OPERATION_COSTS[operation]
