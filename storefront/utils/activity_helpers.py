# storefront/utils/activity_helpers.py
from sqlalchemy.ext.asyncio import AsyncSession
from storefront.models.user_models import UserActivity

async def log_user_activity(db: AsyncSession, user=None, message: str = "", commit: bool = False):
    """
    Adds an admin activity entry to the session. The caller is responsible for the commit.
    Anonymous callers (no user) are not recorded.
    """
    if user is None:
        return
    activity = UserActivity(
        user_id=user.id,
        username=user.username,
        message=message
    )
    db.add(activity)
    if commit:
        await db.commit()
