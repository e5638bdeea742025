from .admin_routes import router as admin_routes
from .book_routes import router as book_routes
from .notification_routes import router as notification_routes
from .review_routes import router as review_routes
from .swap_routes import router as swap_routes
from .user_routes import router as user_routes

__all__ = [
    'admin_routes',
    'book_routes',
    'notification_routes',
    'review_routes',
    'swap_routes',
    'user_routes'
]
