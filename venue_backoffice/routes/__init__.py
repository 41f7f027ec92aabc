# venue_backoffice/routes/__init__.py

# Import all route modules to make them available from venue_backoffice.routes
from venue_backoffice.routes import (
    home,
    login,
    health,
    venues,
    user_management,
    menu,
    staff,
    functions,
)
