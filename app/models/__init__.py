from .user import User
from .role import Role, ADMIN_ROLE
from .listing import Listing
from .auction import Auction
from .bid import Bid
from .subscription import BidderSubscription
from .fee import PlatformFee
from .order import Order
from .payout import SellerPayout
from .settlement_event import SettlementEventLog
from .notification import Notification
from .alert import OperationalAlert
