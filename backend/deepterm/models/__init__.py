"""SQLAlchemy models."""

from sqlalchemy.orm import declarative_base

Base = declarative_base()

# Import all models so Base.metadata.create_all() picks them up
from deepterm.models.user import User  # noqa: E402, F401
from deepterm.models.alert import PortfolioAlert, StockAlert  # noqa: E402, F401
from deepterm.models.push_subscription import PushSubscription  # noqa: E402, F401
