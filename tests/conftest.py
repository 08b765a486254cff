import pytest
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import AsyncGenerator
from httpx import AsyncClient, ASGITransport
from tortoise import Tortoise

from app.main import app
from app.calculator.money import to_pence
from app.enums.fee_type import FeeType
from app.enums.listing_type import ListingType
from app.enums.subscription_status import SubscriptionStatus
from app.models.user import User
from app.models.role import Role, ADMIN_ROLE
from app.models.listing import Listing
from app.models.auction import Auction
from app.models.fee import PlatformFee
from app.models.subscription import BidderSubscription


@pytest.fixture(scope="function", autouse=True)
async def initialize_tests():
    """Initialize a fresh in-memory database before each test"""
    await Tortoise.init(
        db_url="sqlite://:memory:",
        modules={"models": ["app.models"]},
        use_tz=True,
        timezone="UTC",
    )
    await Tortoise.generate_schemas()
    yield
    await Tortoise.close_connections()


@pytest.fixture
async def client() -> AsyncGenerator:
    """Create async HTTP client for testing"""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


async def _create_bidder(email: str) -> User:
    user = await User.create(email=email, display_name=email.split("@")[0])
    await BidderSubscription.create(user=user, status=SubscriptionStatus.active)
    return user


@pytest.fixture
def make_bidder():
    """Factory for users holding an active bidder subscription"""
    return _create_bidder


@pytest.fixture
async def seller() -> User:
    return await User.create(email="seller@example.com", display_name="Seller")


@pytest.fixture
async def buyer() -> User:
    return await User.create(email="buyer@example.com", display_name="Buyer")


@pytest.fixture
async def bidder_a() -> User:
    return await _create_bidder("alice@example.com")


@pytest.fixture
async def bidder_b() -> User:
    return await _create_bidder("bob@example.com")


@pytest.fixture
async def admin() -> User:
    """Create a test admin user"""
    admin = await User.create(email="admin@example.com", display_name="Admin")
    admin_role = await Role.create(name=ADMIN_ROLE, description="Administrator")
    await admin.roles.add(admin_role)
    return admin


@pytest.fixture
async def fees() -> None:
    """Buyer fee £2 and 10% seller commission"""
    await PlatformFee.create(fee_type=FeeType.buyer_fee, amount=Decimal("2.00"), is_percentage=False)
    await PlatformFee.create(fee_type=FeeType.seller_commission, amount=Decimal("10"), is_percentage=True)


@pytest.fixture
async def listing(seller: User) -> Listing:
    return await Listing.create(
        seller=seller,
        title="Vintage road bike",
        price_pence=to_pence(Decimal("100.00")),
        listing_type=ListingType.fixed_price,
    )


@pytest.fixture
async def auction_listing(seller: User) -> Listing:
    return await Listing.create(
        seller=seller,
        title="Signed first edition",
        price_pence=to_pence(Decimal("50.00")),
        listing_type=ListingType.auction,
    )


@pytest.fixture
async def auction(auction_listing: Listing) -> Auction:
    """Auction starting at £50 with the default £1 increment, ending in an hour"""
    return await Auction.create(
        listing=auction_listing,
        seller_id=auction_listing.seller_id,
        starting_bid_pence=to_pence(Decimal("50.00")),
        min_bid_increment_pence=100,
        ends_at=datetime.now(timezone.utc) + timedelta(hours=1),
    )
