"""
Module repositories built on the generic data-access engine.

Usage:
    from erp_api.repositories import DrugLotRepository, get_drug_lot_repository

    repo = get_drug_lot_repository(db)
    page = repo.list(ListQuery(filters={"drug_id": drug_id}))
    lot = repo.find_by_id(lot_id)
"""

from .article import ArticleRepository, ARTICLE_DEFINITION, get_article_repository
from .drug_lot import DrugLotRepository, DRUG_LOT_DEFINITION, get_drug_lot_repository
from .return_reason import ReturnReasonRepository, RETURN_REASON_DEFINITION, get_return_reason_repository

__all__ = [
    # Article
    "ArticleRepository",
    "ARTICLE_DEFINITION",
    "get_article_repository",
    # Drug Lot
    "DrugLotRepository",
    "DRUG_LOT_DEFINITION",
    "get_drug_lot_repository",
    # Return Reason
    "ReturnReasonRepository",
    "RETURN_REASON_DEFINITION",
    "get_return_reason_repository",
]
