"""
Tests for paid (checkout session) and free ticket issuance.
"""

from decimal import Decimal

import pytest
from httpx import AsyncClient
from sqlalchemy import func, select

from myecclesia.models import EventRegistration, Ticket, TicketType

VERIFY_URL = "/api/v1/verify-ticket-payment"
FREE_URL = "/api/v1/create-free-ticket"


async def ticket_count(db_session):
    return (await db_session.execute(select(func.count()).select_from(Ticket))).scalar()


async def only_registration(db_session):
    result = await db_session.execute(
        select(EventRegistration).execution_options(populate_existing=True)
    )
    return result.scalar_one()


# --- paid tickets -------------------------------------------------------------


@pytest.mark.asyncio
async def test_verify_issues_ticket(
    client: AsyncClient, db_session, payments, auth_headers, user_id, test_event, ticket_type
):
    payments.add_session("cs_test_1", metadata={
        "user_id": user_id,
        "event_id": test_event.id,
        "quantity": "2",
        "ticket_type_id": ticket_type.id,
    })

    response = await client.post(VERIFY_URL, json={"sessionId": "cs_test_1"}, headers=auth_headers)

    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert data["message"] == "Ticket created successfully"

    ticket = await db_session.get(Ticket, data["ticketId"])
    assert ticket.user_id == user_id
    assert ticket.quantity == 2
    assert ticket.status == "active"
    assert ticket.payment_id == "cs_test_1"
    assert ticket.payment_metadata["type"] == "paid"

    registration = await only_registration(db_session)
    assert registration.payment_status == "paid"
    assert registration.stripe_session_id == "cs_test_1"

    await db_session.refresh(ticket_type)
    assert ticket_type.quantity_sold == 7


@pytest.mark.asyncio
async def test_verify_twice_returns_same_ticket(
    client: AsyncClient, db_session, payments, auth_headers, user_id, test_event, ticket_type
):
    payments.add_session("cs_test_1", metadata={
        "user_id": user_id,
        "event_id": test_event.id,
        "ticket_type_id": ticket_type.id,
    })

    first = await client.post(VERIFY_URL, json={"sessionId": "cs_test_1"}, headers=auth_headers)
    second = await client.post(VERIFY_URL, json={"sessionId": "cs_test_1"}, headers=auth_headers)

    assert second.json() == {
        "success": True,
        "ticketId": first.json()["ticketId"],
        "message": "Ticket already created",
    }
    assert await ticket_count(db_session) == 1
    await db_session.refresh(ticket_type)
    assert ticket_type.quantity_sold == 6


@pytest.mark.asyncio
async def test_verify_by_event_slug(client: AsyncClient, db_session, payments, auth_headers, user_id, test_event):
    payments.add_session("cs_test_1", metadata={"user_id": user_id, "event_slug": test_event.slug})

    response = await client.post(VERIFY_URL, json={"sessionId": "cs_test_1"}, headers=auth_headers)

    assert response.status_code == 200
    ticket = await db_session.get(Ticket, response.json()["ticketId"])
    assert ticket.event_id == test_event.id


@pytest.mark.asyncio
async def test_verify_unpaid_session(client: AsyncClient, db_session, payments, auth_headers, user_id, test_event):
    payments.add_session("cs_test_1", payment_status="unpaid", metadata={
        "user_id": user_id,
        "event_id": test_event.id,
    })

    response = await client.post(VERIFY_URL, json={"sessionId": "cs_test_1"}, headers=auth_headers)

    assert response.status_code == 409
    assert response.json() == {"error": "Payment not completed"}
    assert await ticket_count(db_session) == 0


@pytest.mark.asyncio
async def test_verify_someone_elses_session(
    client: AsyncClient, db_session, payments, other_auth_headers, user_id, test_event
):
    payments.add_session("cs_test_1", metadata={"user_id": user_id, "event_id": test_event.id})

    response = await client.post(VERIFY_URL, json={"sessionId": "cs_test_1"}, headers=other_auth_headers)

    assert response.status_code == 403
    assert await ticket_count(db_session) == 0


@pytest.mark.asyncio
async def test_verify_session_without_event(client: AsyncClient, payments, auth_headers, user_id):
    payments.add_session("cs_test_1", metadata={"user_id": user_id})

    response = await client.post(VERIFY_URL, json={"sessionId": "cs_test_1"}, headers=auth_headers)

    assert response.status_code == 404
    assert response.json() == {"error": "Event information not found in session"}


@pytest.mark.asyncio
async def test_verify_unknown_event(client: AsyncClient, payments, auth_headers, user_id):
    payments.add_session("cs_test_1", metadata={"user_id": user_id, "event_slug": "no-such-event"})

    response = await client.post(VERIFY_URL, json={"sessionId": "cs_test_1"}, headers=auth_headers)

    assert response.status_code == 404
    assert response.json() == {"error": "Event not found"}


@pytest.mark.asyncio
async def test_verify_requires_session_id(client: AsyncClient, auth_headers):
    response = await client.post(VERIFY_URL, json={}, headers=auth_headers)

    assert response.status_code == 400
    assert response.json() == {"error": "Session ID is required"}


@pytest.mark.asyncio
async def test_issued_ticket_can_be_cancelled(
    client: AsyncClient, db_session, payments, auth_headers, user_id, test_event, ticket_type
):
    """Issue from a paid session, then cancel: sold count goes back to where it was."""
    payments.add_session("cs_test_1", metadata={
        "user_id": user_id,
        "event_id": test_event.id,
        "quantity": "2",
        "ticket_type_id": ticket_type.id,
    })
    issued = await client.post(VERIFY_URL, json={"sessionId": "cs_test_1"}, headers=auth_headers)

    response = await client.post(
        "/api/v1/cancel-ticket",
        json={"ticketId": issued.json()["ticketId"]},
        headers=auth_headers,
    )

    assert response.json() == {"success": True, "message": "Ticket cancelled successfully"}
    await db_session.refresh(ticket_type)
    assert ticket_type.quantity_sold == 5
    registration = await only_registration(db_session)
    assert registration.status == "cancelled"


# --- free tickets -------------------------------------------------------------


@pytest.mark.asyncio
async def test_free_ticket(client: AsyncClient, db_session, auth_headers, user_id, free_event):
    response = await client.post(FREE_URL, json={"eventId": free_event.id}, headers=auth_headers)

    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert data["message"] == "Free ticket created successfully"

    ticket = await db_session.get(Ticket, data["ticketId"])
    assert ticket.payment_id is None
    assert ticket.payment_metadata["type"] == "free"

    registration = await only_registration(db_session)
    assert registration.user_id == user_id
    assert registration.payment_status == "paid"


@pytest.mark.asyncio
async def test_free_ticket_by_slug(client: AsyncClient, auth_headers, free_event):
    response = await client.post(FREE_URL, json={"eventSlug": free_event.slug}, headers=auth_headers)

    assert response.status_code == 200
    assert response.json()["message"] == "Free ticket created successfully"


@pytest.mark.asyncio
async def test_second_free_ticket_returns_first(client: AsyncClient, db_session, auth_headers, free_event):
    first = await client.post(FREE_URL, json={"eventId": free_event.id}, headers=auth_headers)
    second = await client.post(FREE_URL, json={"eventId": free_event.id}, headers=auth_headers)

    assert second.json() == {
        "success": True,
        "ticketId": first.json()["ticketId"],
        "message": "You already have a ticket for this event",
    }
    assert await ticket_count(db_session) == 1


@pytest.mark.asyncio
async def test_free_ticket_for_priced_event(client: AsyncClient, db_session, auth_headers, test_event):
    response = await client.post(FREE_URL, json={"eventId": test_event.id}, headers=auth_headers)

    assert response.status_code == 409
    assert response.json() == {"error": "This event requires payment"}
    assert await ticket_count(db_session) == 0


@pytest.mark.asyncio
async def test_free_ticket_type_on_priced_event(client: AsyncClient, db_session, auth_headers, test_event):
    """A zero-priced ticket type makes an otherwise paid event free to attend."""
    community = TicketType(
        event_id=test_event.id,
        name="Community",
        price=Decimal("0"),
        quantity_available=20,
        quantity_sold=0,
    )
    db_session.add(community)
    await db_session.commit()
    await db_session.refresh(community)

    response = await client.post(
        FREE_URL,
        json={"eventId": test_event.id, "ticketTypeId": community.id, "quantity": 2},
        headers=auth_headers,
    )

    assert response.status_code == 200
    await db_session.refresh(community)
    assert community.quantity_sold == 2


@pytest.mark.asyncio
async def test_free_ticket_with_paid_ticket_type(client: AsyncClient, auth_headers, test_event, ticket_type):
    response = await client.post(
        FREE_URL,
        json={"eventId": test_event.id, "ticketTypeId": ticket_type.id},
        headers=auth_headers,
    )

    assert response.status_code == 409
    assert response.json() == {"error": "This ticket type requires payment"}


@pytest.mark.asyncio
async def test_free_ticket_type_sold_out(client: AsyncClient, db_session, auth_headers, free_event):
    limited = TicketType(
        event_id=free_event.id,
        name="Breakfast",
        price=Decimal("0"),
        quantity_available=3,
        quantity_sold=2,
    )
    db_session.add(limited)
    await db_session.commit()
    await db_session.refresh(limited)

    response = await client.post(
        FREE_URL,
        json={"eventId": free_event.id, "ticketTypeId": limited.id, "quantity": 2},
        headers=auth_headers,
    )

    assert response.status_code == 409
    assert response.json() == {"error": "Not enough tickets available"}


@pytest.mark.asyncio
async def test_free_ticket_type_from_other_event(
    client: AsyncClient, auth_headers, free_event, ticket_type
):
    response = await client.post(
        FREE_URL,
        json={"eventId": free_event.id, "ticketTypeId": ticket_type.id},
        headers=auth_headers,
    )

    assert response.status_code == 404
    assert response.json() == {"error": "Ticket type not found"}


@pytest.mark.asyncio
async def test_free_ticket_unknown_event(client: AsyncClient, auth_headers):
    response = await client.post(FREE_URL, json={"eventSlug": "no-such-event"}, headers=auth_headers)

    assert response.status_code == 404
    assert response.json() == {"error": "Event not found"}


@pytest.mark.asyncio
async def test_free_ticket_rejects_bad_quantity(client: AsyncClient, auth_headers, free_event):
    response = await client.post(
        FREE_URL,
        json={"eventId": free_event.id, "quantity": 0},
        headers=auth_headers,
    )

    assert response.status_code == 400
    assert response.json()["error"].startswith("quantity:")


@pytest.mark.asyncio
async def test_free_ticket_requires_authentication(client: AsyncClient, free_event):
    response = await client.post(FREE_URL, json={"eventId": free_event.id})

    assert response.status_code == 401
