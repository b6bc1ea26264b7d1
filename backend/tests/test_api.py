"""
Testes de integração dos endpoints da API v1.

Fluxo completo do balcão: cadastro, empréstimo, devolução, multas,
troca de cópias e relatórios.
"""

from decimal import Decimal

import pytest
from httpx import AsyncClient

API = "/api/v1"


# ==========================================
# Helpers
# ==========================================

async def create_book(client: AsyncClient, headers: dict, book_code: str, quantity: int = 3) -> dict:
    response = await client.post(
        f"{API}/books",
        params={"quantity": quantity},
        json={"title": f"Livro {book_code}", "author": "Ngugi wa Thiong'o", "book_code": book_code},
        headers=headers,
    )
    assert response.status_code == 201, response.text
    return response.json()


async def create_student(
    client: AsyncClient,
    headers: dict,
    admission_number: str,
    class_id: str | None = None,
) -> dict:
    response = await client.post(
        f"{API}/patrons/students",
        json={
            "admission_number": admission_number,
            "first_name": "Ana",
            "last_name": "Wanjiru",
            "class_id": class_id,
        },
        headers=headers,
    )
    assert response.status_code == 201, response.text
    return response.json()


async def borrow(client: AsyncClient, headers: dict, book_id: str, student_id: str, copy_id: str | None = None):
    return await client.post(
        f"{API}/borrowings",
        json={"book_id": book_id, "student_id": student_id, "book_copy_id": copy_id},
        headers=headers,
    )


# ==========================================
# Catálogo
# ==========================================

class TestBooksAPI:
    """Testes para /books."""

    @pytest.mark.anyio
    async def test_create_book_with_copies(self, client: AsyncClient, auth_headers: dict):
        data = await create_book(client, auth_headers, "mat", quantity=2)

        assert data["book"]["book_code"] == "MAT"
        assert data["book"]["total_copies"] == 2
        assert data["book"]["available_copies"] == 2
        assert data["book"]["status"] == "available"
        assert [c["copy_number"] for c in data["copies"]] == [1, 2]
        assert data["copies"][0]["tracking_code"].startswith("MAT/001/")

    @pytest.mark.anyio
    async def test_book_code_with_slash_is_rejected(self, client: AsyncClient, auth_headers: dict):
        response = await client.post(
            f"{API}/books",
            json={"title": "X", "author": "Y", "book_code": "MA/T"},
            headers=auth_headers,
        )
        assert response.status_code == 422

    @pytest.mark.anyio
    async def test_duplicate_book_code(self, client: AsyncClient, auth_headers: dict):
        await create_book(client, auth_headers, "ENG", quantity=1)

        response = await client.post(
            f"{API}/books",
            json={"title": "Outro", "author": "Y", "book_code": "eng"},
            headers=auth_headers,
        )
        assert response.status_code == 400

    @pytest.mark.anyio
    async def test_copy_lookup_by_tracking_code(self, client: AsyncClient, auth_headers: dict):
        data = await create_book(client, auth_headers, "BIO", quantity=1)
        code = data["copies"][0]["tracking_code"]

        response = await client.get(
            f"{API}/books/copies/by-code/{code.lower()}", headers=auth_headers
        )

        assert response.status_code == 200
        assert response.json()["id"] == data["copies"][0]["id"]

        missing = await client.get(f"{API}/books/copies/by-code/XXX/001/24", headers=auth_headers)
        assert missing.status_code == 404

    @pytest.mark.anyio
    async def test_add_copies_endpoint(self, client: AsyncClient, auth_headers: dict):
        data = await create_book(client, auth_headers, "CHE", quantity=1)
        book_id = data["book"]["id"]

        response = await client.post(
            f"{API}/books/{book_id}/copies",
            json={"quantity": 2, "year": 2023},
            headers=auth_headers,
        )

        assert response.status_code == 201
        assert [c["tracking_code"] for c in response.json()] == ["CHE/002/23", "CHE/003/23"]
        book = (await client.get(f"{API}/books/{book_id}", headers=auth_headers)).json()
        assert book["total_copies"] == 3


# ==========================================
# Empréstimo e devolução
# ==========================================

class TestBorrowingsAPI:
    """Testes para /borrowings."""

    @pytest.mark.anyio
    async def test_borrow_and_return_flow(self, client: AsyncClient, auth_headers: dict):
        book = await create_book(client, auth_headers, "MAT", quantity=3)
        student = await create_student(client, auth_headers, "ADM001")
        book_id = book["book"]["id"]
        copy = book["copies"][0]

        response = await borrow(client, auth_headers, book_id, student["id"], copy["id"])
        assert response.status_code == 201, response.text
        borrowing = response.json()
        assert borrowing["derived_status"] == "active"
        assert borrowing["days_overdue"] == 0
        assert borrowing["tracking_code"] == copy["tracking_code"]

        availability = (
            await client.get(f"{API}/books/{book_id}/availability", headers=auth_headers)
        ).json()
        assert availability["available_copies"] == 2
        assert availability["borrowed_copies"] == 1

        response = await client.post(
            f"{API}/borrowings/{borrowing['id']}/return",
            json={"condition_at_return": "fair", "returned_tracking_code": copy["tracking_code"]},
            headers=auth_headers,
        )
        assert response.status_code == 200, response.text
        returned = response.json()
        assert returned["derived_status"] == "returned"
        assert Decimal(returned["fine_amount"]) == Decimal("50")

        fines = (
            await client.get(
                f"{API}/fines", params={"student_id": student["id"]}, headers=auth_headers
            )
        ).json()
        assert fines["total"] == 1
        assert fines["items"][0]["fine_type"] == "fair_condition"

        again = await client.post(
            f"{API}/borrowings/{borrowing['id']}/return", json={}, headers=auth_headers
        )
        assert again.status_code == 400

    @pytest.mark.anyio
    async def test_limit_exceeded_detail(self, client: AsyncClient, auth_headers: dict):
        school_class = (
            await client.post(
                f"{API}/patrons/classes",
                json={"class_name": "Form 1A", "max_books_allowed": 1},
                headers=auth_headers,
            )
        ).json()
        book = await create_book(client, auth_headers, "GEO", quantity=2)
        student = await create_student(client, auth_headers, "ADM002", school_class["id"])

        first = await borrow(client, auth_headers, book["book"]["id"], student["id"])
        assert first.status_code == 201
        assert first.json()["book_copy_id"] is None

        second = await borrow(client, auth_headers, book["book"]["id"], student["id"])
        assert second.status_code == 400
        detail = second.json()["detail"]
        assert detail["current"] == 1
        assert detail["max"] == 1
        assert detail["requested"] == 1
        assert detail["availableSlots"] == 0

        limit = await client.get(
            f"{API}/patrons/students/{student['id']}/borrowing-limit", headers=auth_headers
        )
        assert limit.json() == {"current": 1, "max": 1, "requested": 1, "availableSlots": 0}

    @pytest.mark.anyio
    async def test_batch_borrowing_respects_free_slots(self, client: AsyncClient, auth_headers: dict):
        school_class = (
            await client.post(
                f"{API}/patrons/classes",
                json={"class_name": "Form 2C", "max_books_allowed": 2},
                headers=auth_headers,
            )
        ).json()
        book = await create_book(client, auth_headers, "AGR", quantity=3)
        student = await create_student(client, auth_headers, "ADM005", school_class["id"])
        items = [{"book_id": book["book"]["id"], "book_copy_id": c["id"]} for c in book["copies"]]

        too_many = await client.post(
            f"{API}/borrowings/batch",
            json={"student_id": student["id"], "items": items},
            headers=auth_headers,
        )
        assert too_many.status_code == 400
        detail = too_many.json()["detail"]
        assert detail["requested"] == 3
        assert detail["availableSlots"] == 2

        issued = await client.post(
            f"{API}/borrowings/batch",
            json={"student_id": student["id"], "items": items[:2]},
            headers=auth_headers,
        )
        assert issued.status_code == 201, issued.text
        assert [b["book_copy_id"] for b in issued.json()] == [c["book_copy_id"] for c in items[:2]]

        availability = (
            await client.get(f"{API}/books/{book['book']['id']}/availability", headers=auth_headers)
        ).json()
        assert availability["available_copies"] == 1

    @pytest.mark.anyio
    async def test_unavailable_copy_is_rejected(self, client: AsyncClient, auth_headers: dict):
        book = await create_book(client, auth_headers, "PHY", quantity=1)
        first = await create_student(client, auth_headers, "ADM003")
        second = await create_student(client, auth_headers, "ADM004")
        copy_id = book["copies"][0]["id"]

        assert (await borrow(client, auth_headers, book["book"]["id"], first["id"], copy_id)).status_code == 201
        response = await borrow(client, auth_headers, book["book"]["id"], second["id"], copy_id)

        assert response.status_code == 400

    @pytest.mark.anyio
    async def test_lost_and_found_flow(self, client: AsyncClient, auth_headers: dict):
        book = await create_book(client, auth_headers, "LIT", quantity=1)
        student = await create_student(client, auth_headers, "ADM005")
        copy = book["copies"][0]
        borrowing = (
            await borrow(client, auth_headers, book["book"]["id"], student["id"], copy["id"])
        ).json()

        lost = await client.post(
            f"{API}/borrowings/{borrowing['id']}/return",
            json={"is_lost": True},
            headers=auth_headers,
        )
        assert lost.status_code == 200
        assert lost.json()["derived_status"] == "lost"
        assert Decimal(lost.json()["fine_amount"]) == Decimal("500")

        lost_list = (await client.get(f"{API}/borrowings/lost", headers=auth_headers)).json()
        assert [b["id"] for b in lost_list] == [borrowing["id"]]

        found = await client.post(
            f"{API}/borrowings/found-lost",
            json={"tracking_code": copy["tracking_code"]},
            headers=auth_headers,
        )
        assert found.status_code == 200, found.text
        data = found.json()
        assert data["restored_borrowing"]["derived_status"] == "returned"
        assert "ADM005" in data["cleared_fine_message"]

        fines = (
            await client.get(
                f"{API}/fines", params={"student_id": student["id"]}, headers=auth_headers
            )
        ).json()
        assert fines["items"][0]["status"] == "cleared"

        notifications = (await client.get(f"{API}/notifications", headers=auth_headers)).json()
        assert notifications[0]["title"] == "Lost Book Found"
        read = await client.patch(
            f"{API}/notifications/{notifications[0]['id']}/read", headers=auth_headers
        )
        assert read.json()["is_read"] is True

    @pytest.mark.anyio
    async def test_unknown_borrowing(self, client: AsyncClient, auth_headers: dict):
        response = await client.get(
            f"{API}/borrowings/00000000-0000-0000-0000-000000000000", headers=auth_headers
        )
        assert response.status_code == 404


# ==========================================
# Multas
# ==========================================

class TestFinesAPI:
    """Testes para /fines."""

    @pytest.mark.anyio
    async def test_manual_fine_and_collect(self, client: AsyncClient, auth_headers: dict):
        student = await create_student(client, auth_headers, "ADM010")

        created = await client.post(
            f"{API}/fines",
            json={"student_id": student["id"], "amount": "150", "fine_type": "poor_condition"},
            headers=auth_headers,
        )
        assert created.status_code == 201
        fine_id = created.json()["id"]

        collected = await client.patch(
            f"{API}/fines/{fine_id}/collect",
            json={"amount_collected": "100"},
            headers=auth_headers,
        )
        assert collected.status_code == 200
        assert collected.json()["status"] == "collected"
        assert Decimal(collected.json()["amount"]) == Decimal("100")

        paid = await client.patch(f"{API}/fines/{fine_id}/pay", headers=auth_headers)
        assert paid.status_code == 400

    @pytest.mark.anyio
    async def test_negative_manual_fine(self, client: AsyncClient, auth_headers: dict):
        student = await create_student(client, auth_headers, "ADM011")

        response = await client.post(
            f"{API}/fines",
            json={"student_id": student["id"], "amount": "-1", "fine_type": "overdue"},
            headers=auth_headers,
        )
        assert response.status_code == 400

    @pytest.mark.anyio
    async def test_fine_settings(self, client: AsyncClient, auth_headers: dict):
        response = await client.put(
            f"{API}/fines/settings/stolen_book",
            json={"amount": "900"},
            headers=auth_headers,
        )
        assert response.status_code == 200

        settings_list = (await client.get(f"{API}/fines/settings", headers=auth_headers)).json()
        stolen = next(s for s in settings_list if s["fine_type"] == "stolen_book")
        assert Decimal(stolen["amount"]) == Decimal("900")
        assert stolen["is_default"] is False

        negative = await client.put(
            f"{API}/fines/settings/overdue", json={"amount": "-5"}, headers=auth_headers
        )
        assert negative.status_code == 422


# ==========================================
# Troca de cópias e relatórios
# ==========================================

class TestTheftAndReportsAPI:
    """Testes para /theft e /reports."""

    @pytest.mark.anyio
    async def test_detect_and_process_swap(self, client: AsyncClient, auth_headers: dict):
        book = await create_book(client, auth_headers, "KIS", quantity=2)
        holder = await create_student(client, auth_headers, "ADM020")
        victim = await create_student(client, auth_headers, "ADM021")
        book_id = book["book"]["id"]
        own_copy, victim_copy = book["copies"]
        await borrow(client, auth_headers, book_id, holder["id"], own_copy["id"])
        victim_borrowing = (
            await borrow(client, auth_headers, book_id, victim["id"], victim_copy["id"])
        ).json()

        detect = await client.post(
            f"{API}/theft/detect",
            json={"returned_code": victim_copy["tracking_code"], "patron_id": holder["id"]},
            headers=auth_headers,
        )
        assert detect.status_code == 200
        data = detect.json()
        assert data["is_mismatch"] is True
        assert data["victim_borrowing"]["id"] == victim_borrowing["id"]
        assert Decimal(data["fine_amount"]) == Decimal("800")

        repeat = await client.post(
            f"{API}/theft/detect",
            json={"returned_code": victim_copy["tracking_code"], "patron_id": holder["id"]},
            headers=auth_headers,
        )
        assert repeat.json()["throttled"] is True

        processed = await client.post(
            f"{API}/theft/process",
            json={"returned_code": victim_copy["tracking_code"], "patron_id": holder["id"]},
            headers=auth_headers,
        )
        assert processed.status_code == 201, processed.text
        report = processed.json()
        assert report["status"] == "resolved"
        assert report["expected_tracking_code"] == own_copy["tracking_code"]

        reports = (await client.get(f"{API}/theft/reports", headers=auth_headers)).json()
        assert reports["total"] == 1

        counts = (await client.get(f"{API}/reports/counts", headers=auth_headers)).json()
        assert counts == {"active": 0, "overdue": 0, "returned": 1, "lost": 1}

        by_patron = (await client.get(f"{API}/reports/fines/by-patron", headers=auth_headers)).json()
        assert by_patron[0]["identifier"] == "ADM020"
        assert Decimal(by_patron[0]["total"]) == Decimal("800")

    @pytest.mark.anyio
    async def test_process_swap_with_operator_choices(self, client: AsyncClient, auth_headers: dict):
        book = await create_book(client, auth_headers, "SWA", quantity=3)
        holder = await create_student(client, auth_headers, "ADM022")
        victim = await create_student(client, auth_headers, "ADM023")
        book_id = book["book"]["id"]
        first_copy, second_copy, victim_copy = book["copies"]
        await borrow(client, auth_headers, book_id, holder["id"], first_copy["id"])
        second = (await borrow(client, auth_headers, book_id, holder["id"], second_copy["id"])).json()
        await borrow(client, auth_headers, book_id, victim["id"], victim_copy["id"])

        negative = await client.post(
            f"{API}/theft/process",
            json={
                "returned_code": victim_copy["tracking_code"],
                "patron_id": holder["id"],
                "fine_amount": "-5",
            },
            headers=auth_headers,
        )
        assert negative.status_code == 422

        processed = await client.post(
            f"{API}/theft/process",
            json={
                "returned_code": victim_copy["tracking_code"],
                "patron_id": holder["id"],
                "fine_amount": "300",
                "expected_borrowing_id": second["id"],
            },
            headers=auth_headers,
        )
        assert processed.status_code == 201, processed.text
        report = processed.json()
        assert report["expected_tracking_code"] == second_copy["tracking_code"]
        assert Decimal(report["fine_amount"]) == Decimal("300")

    @pytest.mark.anyio
    async def test_dashboard(self, client: AsyncClient, auth_headers: dict):
        await create_book(client, auth_headers, "HIS", quantity=2)

        response = await client.get(f"{API}/reports/dashboard", headers=auth_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["total_books"] == 1
        assert data["total_copies"] == 2
        assert data["borrowings"]["active"] == 0
        assert data["currency"] == "KES"
