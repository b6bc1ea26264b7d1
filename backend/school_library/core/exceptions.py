"""
Exceções de domínio do serviço de empréstimos.

Todas herdam de HTTPException para que os services possam levantá-las
diretamente e o FastAPI as converta na resposta adequada.
"""

from typing import Any

from fastapi import HTTPException, status


class LibraryError(HTTPException):
    """Base para erros de regra de negócio."""

    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, detail: Any, headers: dict[str, str] | None = None):
        super().__init__(status_code=self.status_code, detail=detail, headers=headers)


class ValidationError(LibraryError):
    """Campos obrigatórios ausentes ou inconsistentes. Rejeitado antes de qualquer escrita."""

    status_code = status.HTTP_400_BAD_REQUEST


class NotFoundError(LibraryError):
    """Empréstimo, cópia, livro ou leitor inexistente."""

    status_code = status.HTTP_404_NOT_FOUND


class ConflictError(LibraryError):
    """Violação de unicidade na camada de dados (ex: cópia emprestada em paralelo)."""

    status_code = status.HTTP_409_CONFLICT


class LimitExceededError(LibraryError):
    """
    Limite de empréstimos simultâneos do leitor atingido.

    O detail carrega current, max, requested e availableSlots para que
    o cliente monte a mensagem de correção.
    """

    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, current: int, maximum: int, requested: int = 1):
        self.current = current
        self.maximum = maximum
        self.requested = requested
        self.available_slots = max(0, maximum - current)
        super().__init__(
            detail={
                "message": (
                    f"Limite de empréstimos atingido: {current}/{maximum} ativos, "
                    f"{requested} solicitado(s)."
                ),
                "current": current,
                "max": maximum,
                "requested": requested,
                "availableSlots": self.available_slots,
            }
        )
