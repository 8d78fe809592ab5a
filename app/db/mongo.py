from motor.motor_asyncio import AsyncIOMotorClient
from app.config import settings

# Client MongoDB asynchrone
client = AsyncIOMotorClient(settings.MONGO_URL)
db = client[settings.MONGO_DB]

# Collections
analytics_collection = db["analytics"]
audit_logs_collection = db["audit_logs"]
