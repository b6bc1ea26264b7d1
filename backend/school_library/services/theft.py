"""
Service de detecção de troca de cópias ("roubo") no balcão de devolução.

Regras de negócio:
    - Código devolvido igual a um dos códigos esperados do leitor: sem troca
    - Código pertencente ao empréstimo ativo de OUTRO leitor: troca
      confirmada, com a vítima anexada e o valor stolen_book sugerido
    - Leituras repetidas do mesmo código dentro de THEFT_SCAN_DEBOUNCE_MS
      são ignoradas (throttled)
"""

import time
from dataclasses import dataclass, field
from decimal import Decimal
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from school_library.core.config import get_settings
from school_library.core.exceptions import NotFoundError, ValidationError
from school_library.core.logging import get_logger
from school_library.db.redis import get_redis_client
from school_library.models.borrowing import Borrowing
from school_library.models.enums import BookCondition, FineType, TheftReportStatus
from school_library.models.theft_report import TheftReport
from school_library.repositories.borrowing import OPEN_STATUSES, BorrowingRepository
from school_library.repositories.patron import StudentRepository
from school_library.repositories.theft_report import TheftReportRepository
from school_library.services.borrowing import BorrowingService
from school_library.services.fine import FineService, fine_type_label

logger = get_logger(__name__)
settings = get_settings()


class ScanDebouncer:
    """
    Janela de repetição para leituras de código.

    Usa Redis (SET NX PX) quando disponível, para valer entre workers;
    sem Redis, guarda o instante da última leitura em memória.
    """

    KEY_PREFIX = "scan:debounce"

    def __init__(self, window_ms: int | None = None):
        self.window_ms = window_ms if window_ms is not None else settings.THEFT_SCAN_DEBOUNCE_MS
        self._last_seen: dict[str, float] = {}

    async def is_repeat(self, code: str) -> bool:
        """Registra a leitura e retorna True se ela repete uma leitura recente."""
        if self.window_ms <= 0:
            return False

        client = get_redis_client()
        if client is not None:
            try:
                created = await client.set(
                    f"{self.KEY_PREFIX}:{code}", "1", nx=True, px=self.window_ms
                )
                return not created
            except Exception as e:
                logger.warning(f"Debounce via Redis indisponível, usando memória: {e}")

        now = time.monotonic()
        last = self._last_seen.get(code)
        if last is not None and (now - last) * 1000 < self.window_ms:
            return True

        # Descarta leituras fora da janela
        self._last_seen = {
            seen_code: seen_at
            for seen_code, seen_at in self._last_seen.items()
            if (now - seen_at) * 1000 < self.window_ms
        }
        self._last_seen[code] = now
        return False


# Estado compartilhado entre requests do mesmo processo
scan_debouncer = ScanDebouncer()


@dataclass
class MismatchResult:
    """Resultado de uma leitura de código devolvido."""

    is_mismatch: bool
    message: str
    throttled: bool = False
    expected_borrowing: Borrowing | None = None
    victim_borrowing: Borrowing | None = None
    fine_amount: Decimal | None = None
    expected_codes: list[str] = field(default_factory=list)


class TheftService:
    """Service para detecção e tratamento de trocas de cópias."""

    def __init__(self, db: AsyncSession, debouncer: ScanDebouncer | None = None):
        self.db = db
        self.debouncer = debouncer or scan_debouncer
        self.borrowing_repo = BorrowingRepository(db)
        self.student_repo = StudentRepository(db)
        self.report_repo = TheftReportRepository(db)
        self.fine_service = FineService(db)
        self.borrowing_service = BorrowingService(db)

    # ==========================================
    # Detecção
    # ==========================================

    async def detect_mismatch(
        self,
        returned_code: str,
        expected_codes: list[str] | None = None,
        patron_id: UUID | None = None,
    ) -> MismatchResult:
        """
        Compara o código lido com os códigos esperados do leitor.

        Args:
            returned_code: Código lido/digitado no balcão
            expected_codes: Códigos que o leitor deveria devolver; se
                omitido, vêm dos empréstimos ativos de patron_id
            patron_id: Leitor que está devolvendo

        Returns:
            MismatchResult (throttled=True para leitura repetida)

        Raises:
            ValidationError: Código vazio
        """
        code = self._normalize(returned_code)

        if await self.debouncer.is_repeat(code):
            logger.debug(f"Leitura repetida ignorada: {code}")
            return MismatchResult(
                is_mismatch=False,
                throttled=True,
                message=f"Leitura repetida de {code} ignorada",
            )

        return await self._classify(code, expected_codes, patron_id)

    @staticmethod
    def _normalize(code: str) -> str:
        if not code or not code.strip():
            raise ValidationError("Informe o código de rastreio devolvido")
        return code.strip().upper()

    async def _classify(
        self,
        code: str,
        expected_codes: list[str] | None,
        patron_id: UUID | None,
    ) -> MismatchResult:
        own_borrowings: list[Borrowing] = []
        if patron_id is not None:
            own_borrowings = await self.borrowing_repo.get_active_by_patron_id(patron_id)

        if expected_codes is None:
            expected = [b.tracking_code.upper() for b in own_borrowings if b.tracking_code]
        else:
            expected = [c.strip().upper() for c in expected_codes if c and c.strip()]

        if code in expected:
            own = next(
                (b for b in own_borrowings if (b.tracking_code or "").upper() == code),
                None,
            )
            return MismatchResult(
                is_mismatch=False,
                expected_borrowing=own,
                expected_codes=expected,
                message=f"{code} pertence ao próprio leitor",
            )

        victim = next(
            (
                b
                for b in await self.borrowing_repo.get_active_by_tracking_code(code)
                if patron_id is None or b.patron_id != patron_id
            ),
            None,
        )
        if victim is None:
            return MismatchResult(
                is_mismatch=False,
                expected_codes=expected,
                message=f"{code} não está em nenhum empréstimo ativo de outro leitor",
            )

        expected_borrowing = next(
            (b for b in own_borrowings if (b.tracking_code or "").upper() in expected),
            own_borrowings[0] if own_borrowings else None,
        )
        fine_amount = await self.fine_service.resolve_amount(FineType.STOLEN_BOOK)

        logger.warning(
            f"Troca de cópia detectada: {code} devolvido por {patron_id}, "
            f"emprestado a {victim.patron_id} (empréstimo {victim.id})"
        )
        return MismatchResult(
            is_mismatch=True,
            expected_borrowing=expected_borrowing,
            victim_borrowing=victim,
            fine_amount=fine_amount,
            expected_codes=expected,
            message=(
                f"{code} pertence ao empréstimo de outro leitor; "
                f"multa sugerida {fine_amount} {settings.CURRENCY}"
            ),
        )

    # ==========================================
    # Tratamento
    # ==========================================

    async def process_theft_case(
        self,
        returned_code: str,
        patron_id: UUID,
        condition_at_return: BookCondition = BookCondition.GOOD,
        notes: str | None = None,
        fine_amount: Decimal | None = None,
        expected_borrowing_id: UUID | None = None,
    ) -> TheftReport:
        """
        Resolve uma troca confirmada no balcão.

        Fluxo:
            1. Confirma a troca (sem debounce)
            2. Devolve o empréstimo da vítima sem multa
            3. Lança stolen_book para quem estava com a cópia
            4. Marca o empréstimo esperado desse leitor como perdido, sem multa automática
            5. Registra TheftReport RESOLVED

        Args:
            returned_code: Código lido no balcão
            patron_id: Leitor que devolveu a cópia de outro
            condition_at_return: Condição da cópia devolvida
            notes: Observações do relatório
            fine_amount: Valor da multa stolen_book (default: configurado)
            expected_borrowing_id: Empréstimo do leitor que deveria ter sido
                devolvido (default: o mais antigo com código de rastreio)

        Raises:
            ValidationError: Código não caracteriza troca, multa negativa ou
                empréstimo esperado que não é do leitor / não está em aberto
            NotFoundError: Empréstimo esperado inexistente
        """
        if fine_amount is not None and Decimal(fine_amount) < 0:
            raise ValidationError("O valor da multa não pode ser negativo")

        code = self._normalize(returned_code)
        result = await self._classify(code, None, patron_id)
        if not result.is_mismatch:
            raise ValidationError(f"Nenhuma troca de cópia confirmada para {code}")

        victim = result.victim_borrowing
        own = result.expected_borrowing
        if expected_borrowing_id is not None:
            own = await self._get_expected_borrowing(expected_borrowing_id, patron_id)
        amount = Decimal(fine_amount) if fine_amount is not None else result.fine_amount

        await self.borrowing_service.return_borrowing(
            victim.id,
            condition_at_return=condition_at_return,
            prevent_auto_fine=True,
            notes=f"Cópia devolvida por outro leitor ({patron_id})",
        )

        victim_amount = await self.fine_service.resolve_amount(FineType.THEFT_VICTIM)
        if victim_amount > 0:
            await self.fine_service.create_fine(
                amount=victim_amount,
                fine_type=FineType.THEFT_VICTIM,
                student_id=victim.student_id,
                staff_id=victim.staff_id,
                borrowing_id=victim.id,
                description=f"{fine_type_label(FineType.THEFT_VICTIM)} - {code}",
            )

        if own is not None:
            thief_student_id, thief_staff_id = own.student_id, own.staff_id
        elif await self.student_repo.get_by_id(patron_id) is not None:
            thief_student_id, thief_staff_id = patron_id, None
        else:
            thief_student_id, thief_staff_id = None, patron_id

        if amount > 0:
            await self.fine_service.create_fine(
                amount=amount,
                fine_type=FineType.STOLEN_BOOK,
                student_id=thief_student_id,
                staff_id=thief_staff_id,
                borrowing_id=own.id if own else None,
                description=f"{fine_type_label(FineType.STOLEN_BOOK)} - {code}",
            )

        if own is not None:
            await self.borrowing_service.return_borrowing(
                own.id,
                condition_at_return=BookCondition.LOST,
                is_lost=True,
                prevent_auto_fine=True,
                notes=f"Cópia esperada não devolvida; entregou {code}",
            )

        report = await self.report_repo.create(
            expected_tracking_code=own.tracking_code if own else None,
            returned_tracking_code=code,
            borrowing_id=own.id if own else None,
            victim_borrowing_id=victim.id,
            student_id=thief_student_id,
            victim_student_id=victim.student_id,
            book_copy_id=victim.book_copy_id,
            fine_amount=amount,
            status=TheftReportStatus.RESOLVED,
            notes=notes,
        )

        logger.info(
            f"Caso de troca {report.id} resolvido: {code} devolvido por {patron_id}, "
            f"vítima empréstimo {victim.id}, multa {amount} {settings.CURRENCY}"
        )
        return report

    async def _get_expected_borrowing(self, borrowing_id: UUID, patron_id: UUID) -> Borrowing:
        """Empréstimo em aberto e não perdido do próprio leitor."""
        borrowing = await self.borrowing_repo.get_by_id(borrowing_id)
        if borrowing is None:
            raise NotFoundError("Empréstimo esperado não encontrado")
        if borrowing.patron_id != patron_id:
            raise ValidationError("O empréstimo esperado não pertence a este leitor")
        if borrowing.status not in OPEN_STATUSES or borrowing.is_lost:
            raise ValidationError("O empréstimo esperado não está em aberto")
        return borrowing

    # ==========================================
    # Relatórios
    # ==========================================

    async def list_reports(
        self,
        status: TheftReportStatus | None = None,
        page: int = 1,
        page_size: int = 20,
    ) -> tuple[list[TheftReport], int]:
        return await self.report_repo.search(status=status, page=page, page_size=page_size)

    async def get_report(self, report_id: UUID) -> TheftReport:
        report = await self.report_repo.get_by_id(report_id)
        if report is None:
            raise NotFoundError("Relatório não encontrado")
        return report

    async def resolve_report(
        self,
        report_id: UUID,
        status: TheftReportStatus = TheftReportStatus.RESOLVED,
        notes: str | None = None,
    ) -> TheftReport:
        """Encerra um relatório (RESOLVED ou CLOSED)."""
        if status not in (TheftReportStatus.RESOLVED, TheftReportStatus.CLOSED):
            raise ValidationError("Status final deve ser resolved ou closed")

        report = await self.get_report(report_id)
        report = await self.report_repo.update(report, status=status, notes=notes)
        logger.info(f"Relatório de troca {report.id} -> {status.value}")
        return report
