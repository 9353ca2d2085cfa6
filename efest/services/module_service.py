# services/module_service.py
import logging
from datetime import datetime

from flask import current_app
from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError

from efest.exceptions import EfestError, ModuleNotFound, ValidationError
from efest.extensions import db
from efest.models import Module, Participant
from efest.utils.data_processing import clean_text_field, parse_number, to_camel_case

TEXT_FIELDS = ('location', 'description', 'image', 'module_head', 'module_leader', 'partner_group')


def _field(data, snake_name):
    """Accept camelCase or snake_case keys."""
    camel_name = to_camel_case(snake_name)
    if camel_name in data:
        return camel_name, data[camel_name]
    if snake_name in data:
        return snake_name, data[snake_name]
    return None, None


def _parse_date(value):
    if value in (None, ''):
        return None
    if isinstance(value, datetime):
        return value
    try:
        return datetime.fromisoformat(str(value).replace('Z', '+00:00')).replace(tzinfo=None)
    except ValueError:
        raise ValidationError("date must be an ISO 8601 date")


class ModuleService:
    """Service class for module (event) management."""

    @staticmethod
    def list_modules():
        return Module.query.order_by(Module.date.asc(), Module.title.asc()).all()

    @staticmethod
    def get_module(module_id):
        module = db.session.get(Module, module_id)
        if not module:
            raise ModuleNotFound()
        return module

    @staticmethod
    def _ensure_unique_title(title, exclude_id=None):
        query = Module.query.filter(func.lower(Module.title) == title.lower())
        if exclude_id:
            query = query.filter(Module.id != exclude_id)
        if query.first():
            raise ValidationError(f"A module titled '{title}' already exists")

    @staticmethod
    def _apply(module, data, creating=False):
        """Validate and copy module fields from a request payload."""
        if creating or 'title' in data:
            title = clean_text_field(data.get('title'))
            if not title:
                raise ValidationError("title is required")
            ModuleService._ensure_unique_title(title, exclude_id=None if creating else module.id)
            module.title = title

        if creating or 'cap' in data or 'capacity' in data:
            raw = data['cap'] if 'cap' in data else data.get('capacity')
            try:
                module.capacity = parse_number(raw, 'cap', minimum=0, integer=True)
            except ValueError as e:
                raise ValidationError(str(e))

        key, value = _field(data, 'date')
        if key:
            module.date = _parse_date(value)

        for field in TEXT_FIELDS:
            key, value = _field(data, field)
            if key:
                setattr(module, field, clean_text_field(value) or None)

        if not module.partner_group:
            module.partner_group = current_app.config.get('DEFAULT_PARTNER_GROUP', 'Solo')

        try:
            for field, maximum in (('fee', None), ('discount', 100)):
                key, value = _field(data, field)
                if key and value not in (None, ''):
                    setattr(module, field, parse_number(value, field, minimum=0, maximum=maximum))
        except ValueError as e:
            raise ValidationError(str(e))

        module.apply_pricing()

    @staticmethod
    def create_module(data):
        logger = logging.getLogger('module_service')
        try:
            module = Module(fee=0, discount=0)
            ModuleService._apply(module, data, creating=True)
            db.session.add(module)
            db.session.commit()

            logger.info(f"Module '{module.title}' created with cap {module.capacity}")
            return module

        except EfestError:
            db.session.rollback()
            raise
        except Exception as e:
            db.session.rollback()
            logger.error(f"Failed to create module: {str(e)}", exc_info=True)
            raise

    @staticmethod
    def update_module(module_id, data):
        """
        Apply a partial update.

        Renaming a module also rewrites the title stored on its participants
        so listings by title stay consistent. Lowering the cap below the
        current enrollment is allowed; it only blocks further admissions.
        """
        logger = logging.getLogger('module_service')
        try:
            module = ModuleService.get_module(module_id)
            old_title = module.title

            ModuleService._apply(module, data)

            if module.title != old_title:
                for participant in module.participants:
                    participant.module = module.title

            db.session.commit()
            logger.info(f"Module '{module.title}' updated")
            return module

        except EfestError:
            db.session.rollback()
            raise
        except Exception as e:
            db.session.rollback()
            logger.error(f"Failed to update module {module_id}: {str(e)}", exc_info=True)
            raise

    @staticmethod
    def delete_module(module_id):
        logger = logging.getLogger('module_service')
        try:
            module = ModuleService.get_module(module_id)
            title = module.title
            db.session.delete(module)
            db.session.commit()
            logger.info(f"Module '{title}' deleted")

        except EfestError:
            db.session.rollback()
            raise
        except IntegrityError as e:
            db.session.rollback()
            raise ValidationError("Module is still referenced and cannot be deleted") from e

    @staticmethod
    def get_module_participants(module_id):
        """Participants enrolled in a module, by key or by stored title."""
        module = ModuleService.get_module(module_id)
        return (
            Participant.query
            .filter(or_(Participant.module_id == module.id, Participant.module == module.title))
            .order_by(Participant.name.asc())
            .all()
        )
