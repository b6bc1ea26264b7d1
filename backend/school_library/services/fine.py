"""
Service do motor de multas.

Regras de negócio:
    - Valor de cada tipo vem de FineSetting; sem configuração, usa o padrão
    - Multa de devolução = taxa diária (overdue) * dias de atraso
      + penalidade fixa da condição devolvida
    - Tipo da multa segue a precedência: lost_book, damaged,
      poor_condition, fair_condition, late_return (vencido), overdue
    - No máximo uma multa por (empréstimo, tipo) quando prevent_duplicates
    - Valores nunca negativos, moeda única (CURRENCY)
"""

from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from school_library.core.config import get_settings
from school_library.core.exceptions import NotFoundError, ValidationError
from school_library.core.logging import get_logger
from school_library.models.enums import BookCondition, FineStatus, FineType
from school_library.models.fine import Fine, FineSetting
from school_library.repositories.fine import FineRepository, FineSettingRepository

logger = get_logger(__name__)
settings = get_settings()

DEFAULT_FINE_AMOUNTS: dict[FineType, Decimal] = {
    FineType.OVERDUE: Decimal("10"),
    FineType.LATE_RETURN: Decimal("10"),
    FineType.FAIR_CONDITION: Decimal("50"),
    FineType.POOR_CONDITION: Decimal("150"),
    FineType.DAMAGED: Decimal("300"),
    FineType.LOST_BOOK: Decimal("500"),
    FineType.STOLEN_BOOK: Decimal("800"),
    FineType.THEFT_VICTIM: Decimal("0"),
}

FINE_TYPE_LABELS: dict[FineType, str] = {
    FineType.OVERDUE: "Overdue",
    FineType.LATE_RETURN: "Late return",
    FineType.FAIR_CONDITION: "Fair condition",
    FineType.POOR_CONDITION: "Poor condition",
    FineType.DAMAGED: "Damaged book",
    FineType.LOST_BOOK: "Lost book",
    FineType.STOLEN_BOOK: "Stolen book",
    FineType.THEFT_VICTIM: "Theft victim",
}

# Penalidade por condição devolvida (None = sem penalidade)
CONDITION_FINE_TYPES: dict[BookCondition, FineType | None] = {
    BookCondition.EXCELLENT: None,
    BookCondition.GOOD: None,
    BookCondition.FAIR: FineType.FAIR_CONDITION,
    BookCondition.POOR: FineType.POOR_CONDITION,
    BookCondition.DAMAGED: FineType.DAMAGED,
    BookCondition.LOST: FineType.LOST_BOOK,
}


def fine_type_label(fine_type: FineType) -> str:
    """Rótulo legível usado nas descrições das multas."""
    return FINE_TYPE_LABELS.get(fine_type, fine_type.value.replace("_", " ").capitalize())


def classify_fine_type(
    is_lost: bool,
    condition: BookCondition | None,
    due_date: date,
    today: date | None = None,
) -> FineType:
    """
    Classifica a multa de uma devolução.

    A condição tem precedência sobre o atraso: um livro devolvido em
    estado "fair" e atrasado gera fair_condition.
    """
    today = today or date.today()
    if is_lost or condition == BookCondition.LOST:
        return FineType.LOST_BOOK
    if condition == BookCondition.DAMAGED:
        return FineType.DAMAGED
    if condition == BookCondition.POOR:
        return FineType.POOR_CONDITION
    if condition == BookCondition.FAIR:
        return FineType.FAIR_CONDITION
    if due_date < today:
        return FineType.LATE_RETURN
    return FineType.OVERDUE


class FineService:
    """Service para cálculo e lançamento de multas."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.fine_repo = FineRepository(db)
        self.setting_repo = FineSettingRepository(db)

    # ==========================================
    # Valores
    # ==========================================

    async def resolve_amount(self, fine_type: FineType) -> Decimal:
        """
        Valor de um tipo de multa: FineSetting primeiro, padrão depois.

        Args:
            fine_type: Tipo da multa

        Returns:
            Valor não negativo na moeda configurada
        """
        setting = await self.setting_repo.get_by_type(fine_type)
        if setting is not None:
            return Decimal(setting.amount)
        return DEFAULT_FINE_AMOUNTS[fine_type]

    async def condition_penalty(self, condition: BookCondition | None) -> Decimal:
        """Penalidade fixa da condição (excellent/good = 0)."""
        fine_type = CONDITION_FINE_TYPES.get(condition) if condition else None
        if fine_type is None:
            return Decimal("0")
        return await self.resolve_amount(fine_type)

    async def calculate_return_fine(
        self,
        condition: BookCondition | None,
        days_overdue: int,
    ) -> Decimal:
        """taxa_diária * dias_de_atraso + penalidade da condição."""
        per_day = await self.resolve_amount(FineType.OVERDUE)
        overdue_fine = per_day * max(0, days_overdue)
        return overdue_fine + await self.condition_penalty(condition)

    # ==========================================
    # Lançamento
    # ==========================================

    async def create_fine(
        self,
        amount: Decimal,
        fine_type: FineType,
        student_id: UUID | None = None,
        staff_id: UUID | None = None,
        borrowing_id: UUID | None = None,
        description: str | None = None,
        prevent_duplicates: bool = True,
        commit: bool = True,
    ) -> Fine:
        """
        Lança uma multa para um leitor.

        Com prevent_duplicates, uma segunda tentativa para o mesmo
        (borrowing_id, fine_type) devolve a multa existente sem inserir.

        Args:
            amount: Valor (>= 0)
            fine_type: Tipo da multa
            student_id / staff_id: Leitor (exatamente um)
            borrowing_id: Empréstimo de origem (opcional)
            description: Texto da multa (default: rótulo do tipo)
            prevent_duplicates: Reaproveitar multa existente do par
            commit: Se False, só faz flush

        Returns:
            Multa criada ou existente

        Raises:
            ValidationError: Valor negativo ou leitor inválido
        """
        amount = Decimal(amount)
        if amount < 0:
            raise ValidationError("O valor da multa não pode ser negativo")
        if (student_id is None) == (staff_id is None):
            raise ValidationError("Informe exatamente um leitor: student_id ou staff_id")

        if prevent_duplicates and borrowing_id is not None:
            existing = await self.fine_repo.get_by_borrowing_and_type(borrowing_id, fine_type)
            if existing is not None:
                logger.info(
                    f"Multa {fine_type.value} já existe para o empréstimo {borrowing_id}: "
                    f"{existing.id}"
                )
                return existing

        fine = await self.fine_repo.add(
            student_id=student_id,
            staff_id=staff_id,
            borrowing_id=borrowing_id,
            amount=amount,
            fine_type=fine_type,
            description=description or fine_type_label(fine_type),
            status=FineStatus.UNPAID,
        )
        if commit:
            await self.db.commit()
            await self.db.refresh(fine)

        logger.info(
            f"Multa {fine.id} lançada: {fine_type.value} {amount} {settings.CURRENCY} "
            f"(empréstimo {borrowing_id})"
        )
        return fine

    async def get_fine(self, fine_id: UUID) -> Fine:
        fine = await self.fine_repo.get_by_id(fine_id)
        if fine is None:
            raise NotFoundError("Multa não encontrada")
        return fine

    async def list_fines(
        self,
        student_id: UUID | None = None,
        staff_id: UUID | None = None,
        status: FineStatus | None = None,
        fine_type: FineType | None = None,
        page: int = 1,
        page_size: int = 20,
    ) -> tuple[list[Fine], int]:
        return await self.fine_repo.search(
            student_id=student_id,
            staff_id=staff_id,
            status=status,
            fine_type=fine_type,
            page=page,
            page_size=page_size,
        )

    # ==========================================
    # Transições de status
    # ==========================================

    async def _get_unpaid(self, fine_id: UUID) -> Fine:
        fine = await self.get_fine(fine_id)
        if fine.status != FineStatus.UNPAID:
            raise ValidationError(
                f"Multa já está {fine.status.value}; apenas multas unpaid podem mudar de status"
            )
        return fine

    async def pay_fine(self, fine_id: UUID) -> Fine:
        """Marca a multa como paga."""
        fine = await self._get_unpaid(fine_id)
        fine.status = FineStatus.PAID
        await self.db.commit()
        await self.db.refresh(fine)
        logger.info(f"Multa {fine.id} paga ({fine.amount} {settings.CURRENCY})")
        return fine

    async def clear_fine(self, fine_id: UUID, reason: str | None = None) -> Fine:
        """Perdoa a multa (status cleared)."""
        fine = await self._get_unpaid(fine_id)
        fine.status = FineStatus.CLEARED
        if reason:
            fine.description = f"{fine.description or ''} [cleared: {reason}]".strip()
        await self.db.commit()
        await self.db.refresh(fine)
        logger.info(f"Multa {fine.id} perdoada")
        return fine

    async def collect_fine(self, fine_id: UUID, amount_collected: Decimal) -> Fine:
        """
        Registra cobrança da multa, ajustando o valor ao efetivamente recebido.

        Raises:
            ValidationError: Valor negativo ou acima do devido
        """
        amount_collected = Decimal(amount_collected)
        fine = await self._get_unpaid(fine_id)
        if amount_collected < 0 or amount_collected > fine.amount:
            raise ValidationError(
                f"Valor cobrado deve estar entre 0 e {fine.amount} {settings.CURRENCY}"
            )
        fine.status = FineStatus.COLLECTED
        fine.amount = amount_collected
        await self.db.commit()
        await self.db.refresh(fine)
        logger.info(f"Multa {fine.id} cobrada: {amount_collected} {settings.CURRENCY}")
        return fine

    # ==========================================
    # Configuração
    # ==========================================

    async def list_settings(self) -> list[dict]:
        """Valor efetivo de todos os tipos, indicando quais são padrão."""
        configured = {s.fine_type: s for s in await self.setting_repo.list_all()}
        result = []
        for fine_type in FineType:
            setting = configured.get(fine_type)
            result.append(
                {
                    "fine_type": fine_type,
                    "amount": setting.amount if setting else DEFAULT_FINE_AMOUNTS[fine_type],
                    "description": (
                        setting.description if setting and setting.description
                        else fine_type_label(fine_type)
                    ),
                    "is_default": setting is None,
                }
            )
        return result

    async def upsert_setting(
        self,
        fine_type: FineType,
        amount: Decimal,
        description: str | None = None,
    ) -> FineSetting:
        """
        Cria ou atualiza o valor configurado de um tipo.

        Raises:
            ValidationError: Valor negativo
        """
        amount = Decimal(amount)
        if amount < 0:
            raise ValidationError("O valor configurado não pode ser negativo")

        setting = await self.setting_repo.get_by_type(fine_type)
        if setting is None:
            setting = await self.setting_repo.create(
                fine_type=fine_type,
                amount=amount,
                description=description or fine_type_label(fine_type),
            )
        else:
            setting = await self.setting_repo.update(
                setting, amount=amount, description=description
            )

        logger.info(f"Valor de multa {fine_type.value} = {amount} {settings.CURRENCY}")
        return setting
