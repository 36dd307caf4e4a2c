"""
License Plate Registry tests.
"""

from datetime import date

import pytest
from sqlalchemy import select

from backend.app.core.exceptions import InvalidInputError, LicensePlateConflictError, ResourceNotFoundError
from backend.app.models.enums import Timeslot
from backend.app.models.license_plate import LicensePlate
from backend.app.models.reservation import Reservation
from backend.app.services.license_plates import LicensePlateRegistry


async def defaults_for(db, user_id):
    result = await db.execute(
        select(LicensePlate.id).where(LicensePlate.user_id == user_id, LicensePlate.is_default.is_(True))
    )
    return list(result.scalars().all())


@pytest.mark.asyncio
async def test_first_plate_becomes_default(db_session, make_user):
    user = await make_user()
    plate = await LicensePlateRegistry.create_plate(db_session, user.id, "沪A12345", is_default=False)
    assert plate.is_default is True


@pytest.mark.asyncio
async def test_new_default_clears_previous(db_session, make_user):
    user = await make_user()
    first = await LicensePlateRegistry.create_plate(db_session, user.id, "沪A12345")
    second = await LicensePlateRegistry.create_plate(db_session, user.id, "沪B67890", is_default=True)
    third = await LicensePlateRegistry.create_plate(db_session, user.id, "浙C24680")

    assert await defaults_for(db_session, user.id) == [second.id]
    plates = await LicensePlateRegistry.list_plates(db_session, user.id)
    assert [p.id for p in plates] == [second.id, first.id, third.id]


@pytest.mark.asyncio
async def test_set_default_keeps_single_default(db_session, make_user):
    user = await make_user()
    first = await LicensePlateRegistry.create_plate(db_session, user.id, "沪A12345")
    second = await LicensePlateRegistry.create_plate(db_session, user.id, "沪B67890")

    chosen = await LicensePlateRegistry.set_default_plate(db_session, user.id, second.id)

    assert chosen.is_default is True
    assert await defaults_for(db_session, user.id) == [second.id]
    assert (await LicensePlateRegistry.get_default_plate(db_session, user.id)).id == second.id


@pytest.mark.asyncio
async def test_defaults_are_per_user(db_session, make_user):
    alice = await make_user("alice")
    bob = await make_user("bob")
    a = await LicensePlateRegistry.create_plate(db_session, alice.id, "沪A12345")
    b = await LicensePlateRegistry.create_plate(db_session, bob.id, "沪A12345")

    assert await defaults_for(db_session, alice.id) == [a.id]
    assert await defaults_for(db_session, bob.id) == [b.id]

    with pytest.raises(ResourceNotFoundError):
        await LicensePlateRegistry.set_default_plate(db_session, alice.id, b.id)


@pytest.mark.asyncio
@pytest.mark.parametrize("plate_number", ["沪A123", "ABCDEFGHIJK", "   "])
async def test_plate_length_validated(db_session, make_user, plate_number):
    user = await make_user()
    with pytest.raises(InvalidInputError):
        await LicensePlateRegistry.create_plate(db_session, user.id, plate_number)


@pytest.mark.asyncio
async def test_duplicate_plate_rejected(db_session, make_user):
    user = await make_user()
    first = await LicensePlateRegistry.create_plate(db_session, user.id, "沪A12345")
    second = await LicensePlateRegistry.create_plate(db_session, user.id, "沪B67890")
    first_id, second_id = first.id, second.id

    with pytest.raises(LicensePlateConflictError):
        await LicensePlateRegistry.create_plate(db_session, user.id, "沪A12345")
    with pytest.raises(LicensePlateConflictError):
        await LicensePlateRegistry.update_plate(db_session, user.id, second_id, "沪A12345")

    # Renaming a plate to its own number is fine
    renamed = await LicensePlateRegistry.update_plate(db_session, user.id, first_id, "沪A12345")
    assert renamed.plate_number == "沪A12345"


@pytest.mark.asyncio
async def test_delete_default_promotes_another(db_session, make_user):
    user = await make_user()
    first = await LicensePlateRegistry.create_plate(db_session, user.id, "沪A12345")
    second = await LicensePlateRegistry.create_plate(db_session, user.id, "沪B67890")
    first_id, second_id = first.id, second.id

    await LicensePlateRegistry.delete_plate(db_session, user.id, first_id)

    assert await defaults_for(db_session, user.id) == [second_id]
    with pytest.raises(ResourceNotFoundError):
        await LicensePlateRegistry.get_plate(db_session, user.id, first_id)


@pytest.mark.asyncio
async def test_referenced_plate_cannot_be_deleted(db_session, make_user):
    user = await make_user()
    plate = await LicensePlateRegistry.create_plate(db_session, user.id, "沪A12345")
    plate_id = plate.id
    db_session.add(Reservation(user_id=user.id, date=date(2025, 7, 11), timeslot=Timeslot.DAY, license_plate_id=plate_id))
    await db_session.commit()

    with pytest.raises(LicensePlateConflictError) as exc_info:
        await LicensePlateRegistry.delete_plate(db_session, user.id, plate_id)

    assert exc_info.value.error_code == "ERR_CONFLICT_006"
    assert exc_info.value.details["reservations"] == 1
