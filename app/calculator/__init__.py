from .money import to_pence, from_pence
from .settlement import FeeConfig, SettlementBreakdown, compute_settlement
