from pydantic import BaseModel
from typing import Dict, Literal


class PushMessage(BaseModel):
    title: str
    body: str
    # FCM requires every data value to be a string
    data: Dict[str, str] = {}
    priority: Literal["high", "normal"] = "high"
    sound: str = "default"
    channel_id: str = "orders"
