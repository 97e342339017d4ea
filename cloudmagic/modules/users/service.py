import logging
from datetime import datetime, timezone
from typing import Optional

from supabase import Client

from cloudmagic.config import settings
from cloudmagic.modules.users.schemas import Profile, ProfileUpdate

logger = logging.getLogger(__name__)


class ProfileUpdateError(Exception):
    pass


class ProfileService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def get_profile(self, user_id: str) -> Optional[Profile]:
        """Get the profile record for an identity, or None if there is none yet"""
        result = self.supabase.table(settings.users_table)\
            .select("full_name, email")\
            .eq("id", user_id)\
            .limit(1)\
            .execute()

        if not result.data:
            return None
        return Profile(**result.data[0])

    def update_profile(self, user_id: str, profile: ProfileUpdate) -> Profile:
        """Upsert the editable profile fields"""
        update_data = {
            "id": user_id,
            "updated_at": datetime.now(timezone.utc).isoformat(),
        }
        if profile.full_name is not None:
            update_data["full_name"] = profile.full_name
        if profile.email is not None:
            update_data["email"] = profile.email

        try:
            result = self.supabase.table(settings.users_table)\
                .upsert(update_data)\
                .execute()
        except Exception as e:
            logger.error(f"Error updating profile {user_id}: {e}")
            raise ProfileUpdateError(str(e)) from e

        if not result.data:
            raise ProfileUpdateError(f"No profile record returned for {user_id}")
        return Profile(**result.data[0])
