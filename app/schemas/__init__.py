from .bid import BidCreate, BidPlacedResponse, BidResponse, BidListResponse
from .auction import AuctionCreate, AuctionSummaryResponse
from .order import OrderCreate, PaymentAttach, ShipmentUpdate, RefundRequest, PayoutCreate, OrderResponse, PayoutResponse
from .fee import FeeUpdate, FeeConfigResponse
from .notification import NotificationResponse, NotificationListResponse
