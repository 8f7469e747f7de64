"""
Supervisor, stock item and article name repository functions.
"""
from __future__ import annotations

import uuid
from typing import Optional
from sqlalchemy import func
from sqlalchemy.orm import Session

from housing.db import schemas, models


# Supervisors

def get_supervisors(db: Session):
    return db.query(models.Supervisor).order_by(models.Supervisor.name).all()


def get_supervisor(db: Session, supervisor_id: uuid.UUID):
    return db.query(models.Supervisor).filter(models.Supervisor.id == supervisor_id).first()


def create_supervisor(db: Session, supervisor: schemas.SupervisorCreate):
    db_supervisor = models.Supervisor(**supervisor.model_dump())
    db.add(db_supervisor)
    db.commit()
    db.refresh(db_supervisor)
    return db_supervisor


def update_supervisor(db: Session, supervisor_id: uuid.UUID, supervisor: schemas.SupervisorUpdate):
    db_supervisor = get_supervisor(db, supervisor_id)
    if db_supervisor:
        for key, value in supervisor.model_dump(exclude_unset=True).items():
            setattr(db_supervisor, key, value)
        db.commit()
        db.refresh(db_supervisor)
    return db_supervisor


def delete_supervisor(db: Session, supervisor_id: uuid.UUID) -> bool:
    db_supervisor = get_supervisor(db, supervisor_id)
    if not db_supervisor:
        return False
    db.delete(db_supervisor)
    db.commit()
    return True


# Stock items

def get_stock_items(db: Session, farm_id: Optional[uuid.UUID] = None):
    query = db.query(models.StockItem)
    if farm_id is not None:
        query = query.filter(models.StockItem.farm_id == farm_id)
    return query.order_by(models.StockItem.item).all()


def get_stock_item(db: Session, stock_item_id: uuid.UUID):
    return db.query(models.StockItem).filter(models.StockItem.id == stock_item_id).first()


def find_stock_item(db: Session, farm_id: uuid.UUID, item: str):
    """Stock line of a farm whose item name matches case-insensitively."""
    return (
        db.query(models.StockItem)
        .filter(models.StockItem.farm_id == farm_id, func.lower(models.StockItem.item) == item.lower())
        .first()
    )


def create_stock_item(db: Session, stock_item: schemas.StockItemCreate, farm_id: uuid.UUID):
    db_item = models.StockItem(**stock_item.model_dump(exclude={'farm_id'}), farm_id=farm_id)
    db.add(db_item)
    db.commit()
    db.refresh(db_item)
    return db_item


def update_stock_item(db: Session, stock_item_id: uuid.UUID, stock_item: schemas.StockItemUpdate):
    db_item = get_stock_item(db, stock_item_id)
    if db_item:
        for key, value in stock_item.model_dump(exclude_unset=True).items():
            setattr(db_item, key, value)
        db_item.last_updated = models.now_utc()
        db.commit()
        db.refresh(db_item)
    return db_item


def delete_stock_item(db: Session, stock_item_id: uuid.UUID) -> bool:
    db_item = get_stock_item(db, stock_item_id)
    if not db_item:
        return False
    db.delete(db_item)
    db.commit()
    return True


# Article names

def get_article_names(db: Session, active_only: bool = False):
    query = db.query(models.ArticleName)
    if active_only:
        query = query.filter(models.ArticleName.is_active.is_(True))
    return query.order_by(models.ArticleName.name).all()


def get_article_name(db: Session, article_id: uuid.UUID):
    return db.query(models.ArticleName).filter(models.ArticleName.id == article_id).first()


def create_article_name(db: Session, article: schemas.ArticleNameCreate):
    db_article = models.ArticleName(**article.model_dump())
    db.add(db_article)
    db.commit()
    db.refresh(db_article)
    return db_article


def update_article_name(db: Session, article_id: uuid.UUID, article: schemas.ArticleNameUpdate):
    db_article = get_article_name(db, article_id)
    if db_article:
        for key, value in article.model_dump(exclude_unset=True).items():
            setattr(db_article, key, value)
        db.commit()
        db.refresh(db_article)
    return db_article


def delete_article_name(db: Session, article_id: uuid.UUID) -> bool:
    db_article = get_article_name(db, article_id)
    if not db_article:
        return False
    db.delete(db_article)
    db.commit()
    return True
