from .bids import router as bids_router
from .auctions import router as auctions_router
from .orders import router as orders_router
from .fees import router as fees_router
from .webhooks import router as webhooks_router
from .notifications import router as notifications_router
