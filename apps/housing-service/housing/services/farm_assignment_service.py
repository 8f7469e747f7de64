"""
Diagnostics and repair tools for users' farm assignments.
"""

import logging
import uuid
from typing import Any, Dict, List

from sqlalchemy.orm import Session

from housing.audit import AuditAction, log as audit_log
from housing.db import models
from housing.db.repositories import farms as farm_repo
from housing.utils.role_permissions import ROLE_ADMIN, ROLE_SUPERADMIN, ROLE_USER

logger = logging.getLogger(__name__)

NO_FARM_SUGGESTIONS = {
    ROLE_USER: 'Les utilisateurs réguliers doivent avoir une ferme assignée',
    ROLE_ADMIN: 'Les administrateurs doivent être assignés à leur ferme',
    ROLE_SUPERADMIN: 'Les super-administrateurs peuvent fonctionner sans ferme spécifique',
}


class FarmAssignmentError(Exception):
    pass


def check_user_farm_assignment(db: Session, user: models.User) -> Dict[str, Any]:
    """Report the problems with a user's farm assignment and how to fix them."""
    result: Dict[str, Any] = {
        'has_issues': False,
        'issues': [],
        'suggestions': [],
        'user_id': user.id,
        'email': user.email,
        'display_name': user.display_name,
        'role': user.role,
        'farm_id': user.farm_id,
    }
    if user.farm_id is None:
        result['has_issues'] = True
        result['issues'].append('Utilisateur sans ferme assignée')
        if user.role in NO_FARM_SUGGESTIONS:
            result['suggestions'].append(NO_FARM_SUGGESTIONS[user.role])
        return result

    farm = farm_repo.get_farm(db, user.farm_id)
    if farm is None:
        result['has_issues'] = True
        result['issues'].append("La ferme assignée n'existe pas dans la base de données")
        result['suggestions'].append("Réassigner l'utilisateur à une ferme existante ou recréer la ferme")
    elif user.role == ROLE_ADMIN and str(user.id) not in (farm.admins or []):
        result['has_issues'] = True
        result['issues'].append('Utilisateur admin non présent dans la liste des administrateurs de la ferme')
        result['suggestions'].append("Ajouter l'utilisateur à la liste des admins de la ferme")
    return result


def _farm_or_raise(db: Session, farm_id: uuid.UUID) -> models.Farm:
    farm = farm_repo.get_farm(db, farm_id)
    if farm is None:
        raise FarmAssignmentError("La ferme spécifiée n'existe pas")
    return farm


def assign_user_to_farm(db: Session, user: models.User, farm_id: uuid.UUID, commit: bool = True) -> models.User:
    _farm_or_raise(db, farm_id)
    user.farm_id = farm_id
    user.updated_at = models.now_utc()
    if commit:
        db.commit()
        db.refresh(user)
    return user


def add_user_to_farm_admins(db: Session, user: models.User, farm_id: uuid.UUID, commit: bool = True) -> models.Farm:
    farm = _farm_or_raise(db, farm_id)
    admins = list(farm.admins or [])
    if str(user.id) not in admins:
        farm.admins = admins + [str(user.id)]
        if commit:
            db.commit()
            db.refresh(farm)
    return farm


def find_users_without_farms(db: Session) -> List[models.User]:
    return db.query(models.User).filter(models.User.farm_id.is_(None)).order_by(models.User.email).all()


def auto_assign_users_to_farms(db: Session, actor: models.User) -> Dict[str, Any]:
    """Give every user without a farm the first farm; admins also join its admin list."""
    result: Dict[str, Any] = {'assigned': 0, 'errors': [], 'assignments': []}
    farms = farm_repo.get_farms(db)
    if not farms:
        result['errors'].append('Aucune ferme disponible pour assignation')
        return result

    default_farm = farms[0]
    for user in find_users_without_farms(db):
        assign_user_to_farm(db, user, default_farm.id, commit=False)
        if user.role == ROLE_ADMIN:
            add_user_to_farm_admins(db, user, default_farm.id, commit=False)
        result['assigned'] += 1
        result['assignments'].append({
            'user_id': user.id,
            'farm_id': default_farm.id,
            'user_name': user.display_name or user.email,
            'farm_name': default_farm.name,
        })
    if result['assigned']:
        db.commit()
        audit_log(db, action=AuditAction.USER_AUTO_ASSIGN, target_type='farm', target_id=default_farm.id,
                  actor_user_id=actor.id, farm_id=default_farm.id,
                  metadata={'assigned': result['assigned']})
    logger.info("Auto-assigned %s users to farm %s", result['assigned'], default_farm.name)
    return result


__all__ = [
    "FarmAssignmentError",
    "check_user_farm_assignment",
    "assign_user_to_farm",
    "add_user_to_farm_admins",
    "find_users_without_farms",
    "auto_assign_users_to_farms",
]
