from typing import Optional, Dict, Any

from pydantic import BaseModel


PREVIEW_MAX_LENGTH = 120


class NotificationMessage(BaseModel):
    subject: str
    body: str
    data: Dict[str, Any] = {}


class NotificationMessageBuilder:
    def __init__(self, base_url: Optional[str] = None):
        self.base_url = (base_url or '').rstrip('/')

    def _link(self, path: str) -> Optional[str]:
        return f"{self.base_url}{path}" if self.base_url else None

    @staticmethod
    def truncate_preview(text: Optional[str], max_length: int = PREVIEW_MAX_LENGTH) -> str:
        """Collapse whitespace and cut long chat previews with an ellipsis."""
        if not text:
            return ""
        text = " ".join(text.split())
        if len(text) <= max_length:
            return text
        return text[:max_length - 1].rstrip() + "…"

    def build_match_message(self, match_id: str, recipient_id: str, other_user_id: str,
                            conversation_id: Optional[str] = None) -> NotificationMessage:
        """Message telling recipient_id they matched with other_user_id."""
        data = {
            'type': 'new_match',
            'match_id': match_id,
            'recipient_id': recipient_id,
            'other_user_id': other_user_id,
            'conversation_id': conversation_id,
        }
        link = self._link(f"/matches/{match_id}")
        if link:
            data['url'] = link
        return NotificationMessage(
            subject="It's a match!",
            body="You both expressed interest. Start the conversation now.",
            data=data,
        )

    def build_message_notification(self, conversation_id: str, sender_id: str, recipient_id: str,
                                   preview: Optional[str] = None) -> NotificationMessage:
        data = {
            'type': 'new_message',
            'conversation_id': conversation_id,
            'sender_id': sender_id,
            'recipient_id': recipient_id,
        }
        link = self._link(f"/conversations/{conversation_id}")
        if link:
            data['url'] = link
        return NotificationMessage(
            subject="New message",
            body=self.truncate_preview(preview) or "You have a new message.",
            data=data,
        )
