"""Chat messages metered by token credits."""

from dataclasses import dataclass

from sqlalchemy import select

from naikkelas.chat.models import Chat, Message
from naikkelas.credits.meter import CreditMeter
from naikkelas.errors import NotFoundError, ValidationError
from naikkelas.generation.provider import GenerationProvider, HistoryMessage
from naikkelas.ids import generate_id
from naikkelas.logging_config import get_logger
from naikkelas.settings import settings
from naikkelas.storage.db import Database, db

TITLE_LENGTH = 50


@dataclass(frozen=True)
class ChatReply:
    chat_id: str
    message_id: str
    text: str
    tokens_used: int


class ChatService:
    """Sends a user message to the generation provider and bills the reply."""

    def __init__(
        self,
        provider: GenerationProvider,
        database: Database | None = None,
        meter: CreditMeter | None = None,
        logger=None,
    ):
        self.provider = provider
        self.db = database or db
        self.meter = meter or CreditMeter(self.db)
        self.logger = logger or get_logger(__name__)

    def send_message(self, user_id: str, message: str, chat_id: str | None = None) -> ChatReply:
        """Send a message and return the AI reply.

        The minimum-balance gate runs before the provider is called. Credits
        are debited by the provider's reported usage only after a reply was
        generated and stored.

        Args:
            user_id: Sender's user ID
            message: Message text
            chat_id: Existing chat to continue; a new chat is started if None

        Returns:
            ChatReply

        Raises:
            ValidationError: If the message is empty
            InsufficientBalanceError: If the user is below the minimum balance
            NotFoundError: If chat_id does not belong to the user
            ExternalProviderError: If generation fails (nothing is debited)
        """
        if not message or not message.strip():
            raise ValidationError("Message is required")

        self.meter.ensure_minimum(user_id, settings.minimum_credits_threshold)

        with self.db.session() as s:
            if chat_id:
                chat = s.scalar(select(Chat).where(Chat.id == chat_id, Chat.user_id == user_id))
                if chat is None:
                    raise NotFoundError("Chat not found")
                recent = s.scalars(
                    select(Message)
                    .where(Message.chat_id == chat_id, Message.user_id == user_id)
                    .order_by(Message.created_at.desc(), Message.id.desc())
                    .limit(settings.chat_history_limit)
                ).all()
                history = [HistoryMessage(role=m.role, content=m.content) for m in reversed(recent)]
            else:
                chat = Chat(id=generate_id("chat"), user_id=user_id, title=message.strip()[:TITLE_LENGTH])
                s.add(chat)
                history = []

            s.add(Message(
                id=generate_id("msg"),
                chat_id=chat.id,
                user_id=user_id,
                role="user",
                content=message,
            ))
            chat_id = chat.id

        result = self.provider.generate(message, history)

        reply_id = generate_id("msg")
        with self.db.session() as s:
            s.add(Message(
                id=reply_id,
                chat_id=chat_id,
                user_id=user_id,
                role="ai",
                content=result.text,
                tokens_used=result.tokens_used,
            ))
            self.meter.debit(user_id, result.tokens_used, session=s)

        self.logger.info("chat_reply_sent", user_id=user_id, chat_id=chat_id, tokens_used=result.tokens_used)
        return ChatReply(chat_id=chat_id, message_id=reply_id, text=result.text, tokens_used=result.tokens_used)
