import pytest

from smartroommate.core.exceptions import NotFound, ProfileIncomplete, ValidationFailed
from smartroommate.services.users import UserService

from .conftest import COMPLETE_PROFILE


@pytest.fixture
def user_service(user_gateway):
    return UserService(user_gateway)


@pytest.mark.asyncio
async def test_update_profile_derives_completeness(user_service, make_user):
    user = await make_user()

    updated = await user_service.update_profile(user.id, {
        "gender": "male",
        "location": "Porto",
        "bio": "Loves plants",
        "profile_image_url": "http://img/me.png",
        "habits": "gardening, cooking, running",
        "tidiness": 5,
        "social_energy": 2,
        "noise_tolerance": 1,
    })
    assert updated.profile_complete is True

    updated = await user_service.update_profile(user.id, {"habits": "gardening"})
    assert updated.profile_complete is False
    assert updated.location == "Porto"


@pytest.mark.asyncio
async def test_invalid_profile_update_is_not_stored(user_service, make_user):
    user = await make_user()
    with pytest.raises(ValidationFailed):
        await user_service.update_profile(user.id, {"bio": "x" * 40})
    assert (await user_service.get_profile(user.id)).bio is None


@pytest.mark.asyncio
async def test_unknown_user(user_service):
    with pytest.raises(NotFound):
        await user_service.get_profile(12345)


@pytest.mark.asyncio
async def test_incomplete_profile_cannot_browse(user_service, make_user):
    viewer = await make_user()
    await make_user(**COMPLETE_PROFILE)
    with pytest.raises(ProfileIncomplete):
        await user_service.list_roommates(viewer.id)


@pytest.mark.asyncio
async def test_roommates_best_match_first(user_service, make_user):
    viewer = await make_user("Viewer", **COMPLETE_PROFILE)
    far = await make_user(
        "Far", **dict(COMPLETE_PROFILE, habits="gaming, partying, drumming", tidiness=1, social_energy=5, noise_tolerance=5)
    )
    close = await make_user("Close", **COMPLETE_PROFILE)
    await make_user("Incomplete")

    matches = await user_service.list_roommates(viewer.id)

    assert [match.profile.id for match in matches] == [close.id, far.id]
    assert matches[0].compatibility == 100
    assert all(50 <= match.compatibility <= 100 for match in matches)
    assert viewer.id not in [match.profile.id for match in matches]
