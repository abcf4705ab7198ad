"""
Contact Message Repository
"""
from typing import List, Optional

from storefront.domain.contact import ContactMessage, ContactMessageCreate
from storefront.repositories.base import SupabaseRepository

MESSAGES_TABLE = "contact_messages"


class ContactMessageRepository(SupabaseRepository):

    def create(self, message: ContactMessageCreate) -> None:
        # anon callers may insert but not read back, so no row is returned
        self._execute(
            self.client.table(MESSAGES_TABLE).insert(message.to_record(), returning="minimal"),
            "saving contact message",
        )

    def find_all(self, unread_only: bool = False) -> List[ContactMessage]:
        query = self.client.table(MESSAGES_TABLE).select("*")
        if unread_only:
            query = query.eq("is_read", False)
        response = self._execute(query.order("created_at", desc=True), "listing contact messages")
        return [ContactMessage(**row) for row in response.data or []]

    def mark_read(self, message_id: str) -> Optional[ContactMessage]:
        response = self._execute(
            self.client.table(MESSAGES_TABLE).update({"is_read": True}).eq("id", message_id),
            f"marking message {message_id} as read",
        )
        if not response.data:
            return None
        return ContactMessage(**response.data[0])

    def delete(self, message_id: str) -> bool:
        response = self._execute(
            self.client.table(MESSAGES_TABLE).delete().eq("id", message_id),
            f"deleting message {message_id}",
        )
        return bool(response.data)
