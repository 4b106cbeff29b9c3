import logging

from sqlalchemy.exc import SQLAlchemyError

from vaultshare import db
from vaultshare.errors import Conflict, NotFound
from vaultshare.models import VaultItem
from vaultshare.services.roles import READ, WRITE_CONTENT, require_role
from vaultshare.utils import messages
from vaultshare.utils.validators import sanitize_string, validate_required_string, validate_tags

logger = logging.getLogger(__name__)


class VaultItemService:
    """Credential items; reads need any role, writes need edit or owner."""

    @staticmethod
    def list(vault_id: str, actor_id: str):
        vault, _ = require_role(vault_id, actor_id, READ)
        return VaultItem.query.filter_by(vault_id=vault.id).order_by(VaultItem.created_at.desc()).all()

    @staticmethod
    def get(vault_id: str, item_id: str, actor_id: str) -> VaultItem:
        vault, _ = require_role(vault_id, actor_id, READ)
        return VaultItemService._get_item(vault.id, item_id)

    @staticmethod
    def create(vault_id: str, actor_id: str, data: dict) -> VaultItem:
        vault, _ = require_role(vault_id, actor_id, WRITE_CONTENT)
        item = VaultItem(
            vault_id=vault.id,
            created_by=actor_id,
            title=sanitize_string(validate_required_string(data.get('title'), 'title'), 200),
            password=validate_required_string(data.get('password'), 'password'),
            username=sanitize_string(data.get('username'), 255),
            notes=data.get('notes'),
            tags=validate_tags(data.get('tags')),
        )
        VaultItemService._commit(db.session.add, item)
        logger.info(f"VaultItemService: {actor_id} created item {item.id} in {vault.id}")
        return item

    @staticmethod
    def update(vault_id: str, item_id: str, actor_id: str, data: dict) -> VaultItem:
        vault, _ = require_role(vault_id, actor_id, WRITE_CONTENT)
        item = VaultItemService._get_item(vault.id, item_id)

        if 'title' in data:
            item.title = sanitize_string(validate_required_string(data['title'], 'title'), 200)
        if 'password' in data:
            item.password = validate_required_string(data['password'], 'password')
        if 'username' in data:
            item.username = sanitize_string(data['username'], 255)
        if 'notes' in data:
            item.notes = data['notes']
        if 'tags' in data:
            item.tags = validate_tags(data['tags'])

        VaultItemService._commit(None, item)
        return item

    @staticmethod
    def delete(vault_id: str, item_id: str, actor_id: str) -> None:
        vault, _ = require_role(vault_id, actor_id, WRITE_CONTENT)
        item = VaultItemService._get_item(vault.id, item_id)
        VaultItemService._commit(db.session.delete, item)
        logger.info(f"VaultItemService: {actor_id} deleted item {item_id} from {vault.id}")

    @staticmethod
    def _get_item(vault_id, item_id) -> VaultItem:
        item = VaultItem.query.filter_by(id=item_id, vault_id=vault_id).first()
        if item is None:
            raise NotFound(messages.ITEM_NOT_FOUND)
        return item

    @staticmethod
    def _commit(operation, item):
        try:
            if operation is not None:
                operation(item)
            db.session.commit()
        except SQLAlchemyError as e:
            db.session.rollback()
            logger.error(f"VaultItemService: write failed: {e}")
            raise Conflict()
