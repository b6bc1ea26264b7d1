"""
Testes do ciclo de vida do empréstimo: limite, empréstimo, devolução,
perda e livro perdido encontrado.
"""

from datetime import date, timedelta
from decimal import Decimal
from unittest.mock import AsyncMock, patch
from uuid import uuid4

import pytest
from sqlalchemy.exc import OperationalError

from school_library.core.exceptions import (
    LimitExceededError,
    NotFoundError,
    ValidationError,
)
from school_library.models.enums import (
    BookCondition,
    BookStatus,
    BorrowerType,
    BorrowingStatus,
    CopyStatus,
    FineStatus,
    FineType,
)
from school_library.repositories.fine import FineRepository
from school_library.repositories.notification import NotificationRepository
from school_library.schemas.borrowing import BorrowingItem
from school_library.services.borrowing import BorrowingService, default_due_date


# ==========================================
# Limite de empréstimos
# ==========================================

class TestBorrowingLimit:
    """Cota por turma e por funcionário."""

    @pytest.mark.anyio
    async def test_limit_reached_blocks_new_borrowing(
        self, test_db, make_book, make_class, make_student
    ):
        school_class = await make_class("Form 2B", max_books_allowed=2)
        student = await make_student("ADM500", class_id=school_class.id)
        book, _ = await make_book("MAT", quantity=3)
        service = BorrowingService(test_db)

        await service.issue_borrowing(book.id, student_id=student.id)
        await service.issue_borrowing(book.id, student_id=student.id)

        limit = await service.get_borrowing_limit(student_id=student.id)
        assert limit == {"current": 2, "max": 2, "requested": 1, "availableSlots": 0}

        with pytest.raises(LimitExceededError) as exc_info:
            await service.issue_borrowing(book.id, student_id=student.id)

        assert exc_info.value.status_code == 400
        assert exc_info.value.detail["current"] == 2
        assert exc_info.value.detail["max"] == 2
        assert exc_info.value.detail["availableSlots"] == 0

    @pytest.mark.anyio
    async def test_student_without_class_uses_default(self, test_db, make_student):
        student = await make_student("ADM501")

        limit = await BorrowingService(test_db).get_borrowing_limit(student_id=student.id)

        assert limit["max"] == 2
        assert limit["availableSlots"] == 2

    @pytest.mark.anyio
    async def test_staff_limit(self, test_db, make_book, make_staff):
        staff = await make_staff("STF500")
        book, _ = await make_book("ENG", quantity=1)
        service = BorrowingService(test_db)

        for _ in range(5):
            await service.issue_borrowing(book.id, staff_id=staff.id)

        with pytest.raises(LimitExceededError):
            await service.issue_borrowing(book.id, staff_id=staff.id)

    @pytest.mark.anyio
    async def test_unknown_patron(self, test_db):
        with pytest.raises(NotFoundError):
            await BorrowingService(test_db).get_borrowing_limit(student_id=uuid4())


# ==========================================
# Empréstimo
# ==========================================

class TestIssueBorrowing:
    """Testes para issue_borrowing."""

    @pytest.mark.anyio
    async def test_issue_copy_marks_it_borrowed(self, test_db, make_book, make_student):
        book, copies = await make_book("MAT", quantity=3)
        student = await make_student("ADM600")

        borrowing = await BorrowingService(test_db).issue_borrowing(
            book.id, student_id=student.id, book_copy_id=copies[0].id
        )

        assert borrowing.status == BorrowingStatus.ACTIVE
        assert borrowing.borrower_type == BorrowerType.STUDENT
        assert borrowing.tracking_code == copies[0].tracking_code
        assert borrowing.due_date == default_due_date(date.today())
        assert copies[0].status == CopyStatus.BORROWED
        assert book.available_copies == 2

    @pytest.mark.anyio
    async def test_issue_without_copy_leaves_copies_untouched(
        self, test_db, make_book, make_student
    ):
        book, copies = await make_book("BIO", quantity=1)
        student = await make_student("ADM601")

        borrowing = await BorrowingService(test_db).issue_borrowing(book.id, student_id=student.id)

        assert borrowing.book_copy_id is None
        assert copies[0].status == CopyStatus.AVAILABLE
        assert book.available_copies == 1

    @pytest.mark.anyio
    async def test_borrowed_copy_cannot_be_issued_again(
        self, test_db, make_book, make_student
    ):
        book, copies = await make_book("CHE", quantity=1)
        first = await make_student("ADM602")
        second = await make_student("ADM603")
        service = BorrowingService(test_db)

        await service.issue_borrowing(book.id, student_id=first.id, book_copy_id=copies[0].id)

        with pytest.raises(ValidationError):
            await service.issue_borrowing(book.id, student_id=second.id, book_copy_id=copies[0].id)

    @pytest.mark.anyio
    async def test_copy_of_another_book_is_rejected(self, test_db, make_book, make_student):
        book, _ = await make_book("PHY", quantity=1)
        _, other_copies = await make_book("GEO", quantity=1)
        student = await make_student("ADM604")

        with pytest.raises(ValidationError):
            await BorrowingService(test_db).issue_borrowing(
                book.id, student_id=student.id, book_copy_id=other_copies[0].id
            )

    @pytest.mark.anyio
    async def test_patron_must_be_exactly_one(self, test_db, make_book, make_student, make_staff):
        book, _ = await make_book("HIS", quantity=1)
        student = await make_student("ADM605")
        staff = await make_staff("STF605")
        service = BorrowingService(test_db)

        with pytest.raises(ValidationError):
            await service.issue_borrowing(book.id)
        with pytest.raises(ValidationError):
            await service.issue_borrowing(book.id, student_id=student.id, staff_id=staff.id)

    @pytest.mark.anyio
    async def test_due_date_must_follow_borrowed_date(self, test_db, make_book, make_student):
        book, _ = await make_book("KIS", quantity=1)
        student = await make_student("ADM606")

        with pytest.raises(ValidationError):
            await BorrowingService(test_db).issue_borrowing(
                book.id, student_id=student.id, due_date=date.today()
            )

    @pytest.mark.anyio
    async def test_unknown_book(self, test_db, make_student):
        student = await make_student("ADM607")

        with pytest.raises(NotFoundError):
            await BorrowingService(test_db).issue_borrowing(uuid4(), student_id=student.id)


class TestIssueBatch:
    """Testes para issue_borrowings (vários livros de uma vez)."""

    @pytest.mark.anyio
    async def test_batch_issues_all_copies_in_one_go(
        self, test_db, make_book, make_class, make_student
    ):
        school_class = await make_class("Form 4A", max_books_allowed=3)
        student = await make_student("ADM650", class_id=school_class.id)
        math, math_copies = await make_book("MAT", quantity=2)
        english, english_copies = await make_book("ENG", quantity=1)
        service = BorrowingService(test_db)

        borrowings = await service.issue_borrowings(
            [
                BorrowingItem(book_id=math.id, book_copy_id=math_copies[0].id),
                BorrowingItem(book_id=english.id, book_copy_id=english_copies[0].id),
                BorrowingItem(book_id=math.id),
            ],
            student_id=student.id,
        )

        assert [b.tracking_code for b in borrowings] == [
            math_copies[0].tracking_code,
            english_copies[0].tracking_code,
            None,
        ]
        assert {b.due_date for b in borrowings} == {default_due_date(date.today())}
        assert math_copies[0].status == CopyStatus.BORROWED
        assert english_copies[0].status == CopyStatus.BORROWED
        assert math.available_copies == 1
        assert english.status == BookStatus.UNAVAILABLE

        limit = await service.get_borrowing_limit(student_id=student.id)
        assert limit["current"] == 3
        assert limit["availableSlots"] == 0

    @pytest.mark.anyio
    async def test_batch_larger_than_free_slots_issues_nothing(
        self, test_db, make_book, make_class, make_student
    ):
        school_class = await make_class("Form 1C", max_books_allowed=3)
        student = await make_student("ADM651", class_id=school_class.id)
        book, copies = await make_book("CHE", quantity=3)
        service = BorrowingService(test_db)
        await service.issue_borrowing(book.id, student_id=student.id)

        with pytest.raises(LimitExceededError) as exc_info:
            await service.issue_borrowings(
                [BorrowingItem(book_id=book.id, book_copy_id=c.id) for c in copies],
                student_id=student.id,
            )

        assert exc_info.value.detail["current"] == 1
        assert exc_info.value.detail["max"] == 3
        assert exc_info.value.detail["requested"] == 3
        assert exc_info.value.detail["availableSlots"] == 2
        assert all(c.status == CopyStatus.AVAILABLE for c in copies)
        assert (await service.get_borrowing_limit(student_id=student.id))["current"] == 1

    @pytest.mark.anyio
    async def test_batch_with_unavailable_copy_issues_nothing(
        self, test_db, make_book, make_student, make_staff
    ):
        book, copies = await make_book("BIO", quantity=2)
        student = await make_student("ADM652")
        staff = await make_staff("STF650")
        service = BorrowingService(test_db)
        await service.issue_borrowing(book.id, student_id=student.id, book_copy_id=copies[1].id)

        with pytest.raises(ValidationError):
            await service.issue_borrowings(
                [
                    BorrowingItem(book_id=book.id, book_copy_id=copies[0].id),
                    BorrowingItem(book_id=book.id, book_copy_id=copies[1].id),
                ],
                staff_id=staff.id,
            )

        assert copies[0].status == CopyStatus.AVAILABLE
        assert (await service.get_borrowing_limit(staff_id=staff.id))["current"] == 0

    @pytest.mark.anyio
    async def test_batch_rejects_repeated_copy_and_empty_list(
        self, test_db, make_book, make_student
    ):
        book, copies = await make_book("GEO", quantity=1)
        student = await make_student("ADM653")
        service = BorrowingService(test_db)

        with pytest.raises(ValidationError):
            await service.issue_borrowings(
                [BorrowingItem(book_id=book.id, book_copy_id=copies[0].id)] * 2,
                student_id=student.id,
            )
        with pytest.raises(ValidationError):
            await service.issue_borrowings([], student_id=student.id)


# ==========================================
# Devolução
# ==========================================

class TestReturnBorrowing:
    """Testes para return_borrowing."""

    @pytest.fixture
    async def setup(self, test_db, make_book, make_student):
        book, copies = await make_book("MAT", quantity=3)
        student = await make_student("ADM700")
        return book, copies, student

    async def _issue(self, test_db, book, copy, student, days_late: int = 0):
        borrowed_date = date.today() - timedelta(days=14 + days_late)
        return await BorrowingService(test_db).issue_borrowing(
            book.id,
            student_id=student.id,
            book_copy_id=copy.id,
            borrowed_date=borrowed_date,
            due_date=borrowed_date + timedelta(days=14),
        )

    @pytest.mark.anyio
    async def test_on_time_good_return_has_no_fine(self, test_db, setup):
        book, copies, student = setup
        borrowing = await self._issue(test_db, book, copies[0], student)
        assert book.available_copies == 2

        returned = await BorrowingService(test_db).return_borrowing(borrowing.id)

        assert returned.status == BorrowingStatus.RETURNED
        assert returned.returned_date == date.today()
        assert returned.fine_amount == Decimal("0")
        assert book.available_copies == 3
        _, total = await FineRepository(test_db).search(student_id=student.id)
        assert total == 0

    @pytest.mark.anyio
    async def test_late_fair_return_creates_condition_fine(self, test_db, setup):
        """5 dias de atraso + fair: 5 * 10 + 50 = 100, tipo fair_condition."""
        book, copies, student = setup
        borrowing = await self._issue(test_db, book, copies[0], student, days_late=5)

        returned = await BorrowingService(test_db).return_borrowing(
            borrowing.id, condition_at_return=BookCondition.FAIR
        )

        assert returned.fine_amount == Decimal("100")
        fine = await FineRepository(test_db).get_by_borrowing_and_type(
            borrowing.id, FineType.FAIR_CONDITION
        )
        assert fine is not None
        assert fine.amount == Decimal("100")
        assert fine.status == FineStatus.UNPAID
        assert copies[0].status == CopyStatus.AVAILABLE
        assert copies[0].condition == BookCondition.FAIR

    @pytest.mark.anyio
    async def test_late_good_return_is_late_return_fine(self, test_db, setup):
        book, copies, student = setup
        borrowing = await self._issue(test_db, book, copies[0], student, days_late=3)

        await BorrowingService(test_db).return_borrowing(borrowing.id)

        fine = await FineRepository(test_db).get_by_borrowing_and_type(
            borrowing.id, FineType.LATE_RETURN
        )
        assert fine.amount == Decimal("30")

    @pytest.mark.anyio
    async def test_explicit_amount_and_prevent_auto_fine(self, test_db, setup):
        book, copies, student = setup
        late = await self._issue(test_db, book, copies[0], student, days_late=4)
        other = await self._issue(test_db, book, copies[1], student, days_late=4)
        service = BorrowingService(test_db)

        overridden = await service.return_borrowing(late.id, fine_amount=Decimal("25"))
        waived = await service.return_borrowing(other.id, prevent_auto_fine=True)

        assert overridden.fine_amount == Decimal("25")
        assert waived.fine_amount == Decimal("0")
        assert await FineRepository(test_db).get_by_borrowing(other.id) == []

    @pytest.mark.anyio
    async def test_returned_twice_is_rejected(self, test_db, setup):
        book, copies, student = setup
        borrowing = await self._issue(test_db, book, copies[0], student)
        service = BorrowingService(test_db)
        await service.return_borrowing(borrowing.id)

        with pytest.raises(ValidationError):
            await service.return_borrowing(borrowing.id)

    @pytest.mark.anyio
    async def test_negative_fine_is_rejected(self, test_db, setup):
        book, copies, student = setup
        borrowing = await self._issue(test_db, book, copies[0], student)

        with pytest.raises(ValidationError):
            await BorrowingService(test_db).return_borrowing(
                borrowing.id, fine_amount=Decimal("-1")
            )

    @pytest.mark.anyio
    async def test_wrong_tracking_code_is_rejected_before_writing(self, test_db, setup):
        book, copies, student = setup
        borrowing = await self._issue(test_db, book, copies[0], student)

        with pytest.raises(ValidationError):
            await BorrowingService(test_db).return_borrowing(
                borrowing.id, returned_tracking_code=copies[1].tracking_code
            )

        assert borrowing.status == BorrowingStatus.ACTIVE
        assert copies[0].status == CopyStatus.BORROWED

    @pytest.mark.anyio
    async def test_unknown_borrowing(self, test_db):
        with pytest.raises(NotFoundError):
            await BorrowingService(test_db).return_borrowing(uuid4())

    @pytest.mark.anyio
    async def test_fine_failure_does_not_undo_return(self, test_db, setup):
        """Falha ao lançar a multa fica no log; devolução e cópia seguem."""
        book, copies, student = setup
        borrowing = await self._issue(test_db, book, copies[0], student, days_late=2)
        service = BorrowingService(test_db)

        with patch.object(
            service.fine_service,
            "create_fine",
            AsyncMock(side_effect=OperationalError("INSERT", {}, Exception("db down"))),
        ):
            returned = await service.return_borrowing(borrowing.id)

        assert returned.status == BorrowingStatus.RETURNED
        assert returned.fine_amount == Decimal("20")
        assert await FineRepository(test_db).get_by_borrowing(borrowing.id) == []
        copy = await service.copy_repo.get_by_id(copies[0].id)
        assert copy.status == CopyStatus.AVAILABLE


# ==========================================
# Perda e livro encontrado
# ==========================================

class TestLostBooks:
    """Perda mantém o empréstimo aberto; livro encontrado restaura tudo."""

    @pytest.fixture
    async def lost_borrowing(self, test_db, make_book, make_student):
        book, copies = await make_book("LIT", quantity=1)
        student = await make_student("ADM800", first_name="Brian", last_name="Kamau")
        service = BorrowingService(test_db)
        borrowing = await service.issue_borrowing(
            book.id, student_id=student.id, book_copy_id=copies[0].id
        )
        await service.return_borrowing(borrowing.id, is_lost=True)
        return book, copies[0], student, borrowing

    @pytest.mark.anyio
    async def test_lost_return(self, test_db, lost_borrowing):
        book, copy, student, borrowing = lost_borrowing

        assert borrowing.is_lost is True
        assert borrowing.status == BorrowingStatus.ACTIVE
        assert borrowing.fine_amount == Decimal("500")
        assert copy.status == CopyStatus.LOST
        assert copy.condition == BookCondition.LOST
        assert book.available_copies == 0
        assert book.status == BookStatus.UNAVAILABLE

        fine = await FineRepository(test_db).get_by_borrowing_and_type(
            borrowing.id, FineType.LOST_BOOK
        )
        assert fine.amount == Decimal("500")

    @pytest.mark.anyio
    async def test_lost_borrowing_still_counts_toward_limit(self, test_db, lost_borrowing):
        _, _, student, _ = lost_borrowing

        limit = await BorrowingService(test_db).get_borrowing_limit(student_id=student.id)

        assert limit["current"] == 1

    @pytest.mark.anyio
    async def test_lost_borrowing_cannot_be_returned_normally(self, test_db, lost_borrowing):
        _, _, _, borrowing = lost_borrowing

        with pytest.raises(ValidationError):
            await BorrowingService(test_db).return_borrowing(borrowing.id)

    @pytest.mark.anyio
    async def test_listing_lost(self, test_db, lost_borrowing):
        _, _, _, borrowing = lost_borrowing
        service = BorrowingService(test_db)

        assert [b.id for b in await service.list_lost()] == [borrowing.id]
        items, total = await service.list_borrowings(status="lost")
        assert total == 1
        _, active_total = await service.list_borrowings(status="active")
        assert active_total == 0

    @pytest.mark.anyio
    async def test_found_lost_book_restores_everything(self, test_db, lost_borrowing):
        book, copy, student, borrowing = lost_borrowing
        service = BorrowingService(test_db)

        result = await service.handle_found_lost_book(copy.tracking_code.lower())

        restored = result["restored_borrowing"]
        assert restored.id == borrowing.id
        assert restored.status == BorrowingStatus.RETURNED
        assert restored.is_lost is False
        assert restored.returned_date == date.today()
        assert "Brian Kamau" in result["cleared_fine_message"]

        assert copy.status == CopyStatus.AVAILABLE
        assert copy.condition == BookCondition.GOOD
        assert book.available_copies == 1

        fine = await FineRepository(test_db).get_by_borrowing_and_type(
            borrowing.id, FineType.LOST_BOOK
        )
        assert fine.status == FineStatus.CLEARED

        notifications = await NotificationRepository(test_db).list_recent()
        assert len(notifications) == 1
        assert notifications[0].title == "Lost Book Found"
        assert "ADM800" in notifications[0].message

        limit = await service.get_borrowing_limit(student_id=student.id)
        assert limit["current"] == 0

    @pytest.mark.anyio
    async def test_found_unknown_code(self, test_db):
        with pytest.raises(NotFoundError):
            await BorrowingService(test_db).handle_found_lost_book("NOPE/001/24")


# ==========================================
# Consultas
# ==========================================

class TestListing:
    """Status derivado nas listagens."""

    @pytest.mark.anyio
    async def test_overdue_is_derived(self, test_db, make_book, make_student):
        book, _ = await make_book("MAT", quantity=2)
        student = await make_student("ADM900")
        service = BorrowingService(test_db)
        past = date.today() - timedelta(days=20)

        late = await service.issue_borrowing(
            book.id, student_id=student.id,
            borrowed_date=past, due_date=past + timedelta(days=14),
        )
        await service.issue_borrowing(book.id, student_id=student.id)

        overdue = await service.list_overdue()
        assert [b.id for b in overdue] == [late.id]
        assert late.status == BorrowingStatus.ACTIVE
        assert late.days_overdue() == 6

        _, total = await service.list_borrowings(status="overdue")
        assert total == 1
        _, total = await service.list_borrowings(status="active")
        assert total == 1
