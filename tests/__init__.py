# Force SQLModel table registration at test discovery time
# This ensures all models are registered before any test database creation
from courtside.models.category import Category  # noqa: F401
from courtside.models.court import Court  # noqa: F401
from courtside.models.match import Match  # noqa: F401
from courtside.models.tournament import Tournament  # noqa: F401
