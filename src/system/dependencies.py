from src.system.services import HealthService


async def get_health_service() -> HealthService:
    return HealthService()
