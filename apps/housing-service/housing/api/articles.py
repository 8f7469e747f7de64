"""
Article name catalogue endpoints (names offered when creating stock lines).
"""
from typing import List
import uuid

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from housing.db.database import get_db
from housing.db import schemas
from housing.db.repositories import catalog as catalog_repo
from housing.api.deps import get_current_user_context, get_superadmin_context
from housing.audit import AuditAction, log

router = APIRouter(prefix="/articles", tags=["articles"])


@router.get("/", response_model=List[schemas.ArticleName])
def list_articles(
    active_only: bool = False,
    db: Session = Depends(get_db),
    user_context=Depends(get_current_user_context),
):
    return catalog_repo.get_article_names(db, active_only=active_only)


@router.post("/", response_model=schemas.ArticleName, status_code=status.HTTP_201_CREATED)
def create_article(
    payload: schemas.ArticleNameCreate,
    db: Session = Depends(get_db),
    user_context=Depends(get_superadmin_context),
):
    user, _ctx = user_context
    existing = [a for a in catalog_repo.get_article_names(db) if a.name.lower() == payload.name.lower()]
    if existing:
        raise HTTPException(status_code=409, detail="An article with this name already exists")
    article = catalog_repo.create_article_name(db, payload)
    log(db, action=AuditAction.ARTICLE_CREATE, target_type="article", target_id=article.id,
        actor_user_id=user.id, metadata={"name": article.name})
    return article


@router.put("/{article_id}", response_model=schemas.ArticleName)
def update_article(
    article_id: uuid.UUID,
    payload: schemas.ArticleNameUpdate,
    db: Session = Depends(get_db),
    user_context=Depends(get_superadmin_context),
):
    user, _ctx = user_context
    article = catalog_repo.update_article_name(db, article_id, payload)
    if not article:
        raise HTTPException(status_code=404, detail="Article not found")
    log(db, action=AuditAction.ARTICLE_UPDATE, target_type="article", target_id=article.id,
        actor_user_id=user.id, metadata={"fields": sorted(payload.model_dump(exclude_unset=True).keys())})
    return article


@router.delete("/{article_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_article(
    article_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context=Depends(get_superadmin_context),
):
    user, _ctx = user_context
    if not catalog_repo.delete_article_name(db, article_id):
        raise HTTPException(status_code=404, detail="Article not found")
    log(db, action=AuditAction.ARTICLE_DELETE, target_type="article", target_id=article_id,
        actor_user_id=user.id)
