"""
Enums utilizados nos models da aplicação.
"""

import enum


class OperatorRole(str, enum.Enum):
    """Papéis aceitos no token do operador."""
    ADMIN = "ADMIN"
    LIBRARIAN = "LIBRARIAN"


class BookStatus(str, enum.Enum):
    """Status de um título, derivado das cópias pelo inventário."""
    AVAILABLE = "available"
    UNAVAILABLE = "unavailable"


class CopyStatus(str, enum.Enum):
    """Status de uma cópia física do livro."""
    AVAILABLE = "available"
    BORROWED = "borrowed"
    LOST = "lost"
    MAINTENANCE = "maintenance"


class BookCondition(str, enum.Enum):
    """
    Estado de conservação de uma cópia.

    A ordem de declaração é a ordem crescente de penalidade na devolução.
    """
    EXCELLENT = "excellent"
    GOOD = "good"
    FAIR = "fair"
    POOR = "poor"
    DAMAGED = "damaged"
    LOST = "lost"


class BorrowerType(str, enum.Enum):
    """Tipo de leitor."""
    STUDENT = "student"
    STAFF = "staff"


class BorrowingStatus(str, enum.Enum):
    """
    Status persistido de um empréstimo.

    OVERDUE e LOST são aceitos para registros legados; o serviço
    deriva atraso na consulta e marca perda via is_lost.
    """
    ACTIVE = "active"
    RETURNED = "returned"
    OVERDUE = "overdue"
    LOST = "lost"


class FineType(str, enum.Enum):
    """Categoria da multa; define valor configurado e descrição."""
    OVERDUE = "overdue"
    LATE_RETURN = "late_return"
    FAIR_CONDITION = "fair_condition"
    POOR_CONDITION = "poor_condition"
    DAMAGED = "damaged"
    LOST_BOOK = "lost_book"
    STOLEN_BOOK = "stolen_book"
    THEFT_VICTIM = "theft_victim"


class FineStatus(str, enum.Enum):
    """Status de uma multa."""
    UNPAID = "unpaid"
    PAID = "paid"
    CLEARED = "cleared"
    COLLECTED = "collected"


class TheftReportStatus(str, enum.Enum):
    """Status de um relatório de troca de cópias."""
    REPORTED = "reported"
    INVESTIGATING = "investigating"
    RESOLVED = "resolved"
    CLOSED = "closed"


class NotificationType(str, enum.Enum):
    """Tipo de notificação do sistema."""
    INFO = "info"
    WARNING = "warning"
