"""ORM Models — imported here so Base.metadata knows every table before create_all/alembic."""

from notecritic.models.conversation_log import ConversationLog  # noqa: F401
