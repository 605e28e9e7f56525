# Import all models so SQLAlchemy can resolve relationships
from app.models.database import Base  # noqa: F401
from app.models.financial_model import FinancialModel, ModelInput  # noqa: F401
from app.models.scenario import ModelScenario  # noqa: F401
