from .size_recommendation import recommend_size, recommend_pants_size, pick_available_size
from .timeline import build_timeline, status_at
from .analytics import compute_dashboard, resolve_window
from .reservation_lifecycle import new_reservation, apply_status_change
from .backfill import backfill_record
