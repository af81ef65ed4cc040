"""
Product service for business logic operations.

Handles CRUD and bulk creation for the product catalog.
"""

from typing import Optional
import structlog

from config import get_supabase_client
from models.product import (
    ProductCreate,
    ProductUpdate,
    ProductResponse,
    Department,
    ProductType,
    product_from_row,
    product_to_row,
)
from exceptions import ProductNotFoundError, DatabaseError
from services import invalidation
from services.invalidation import Resource
from utils.text_utils import matches_query

logger = structlog.get_logger(__name__)


class ProductService:
    """
    Product business logic.

    Handles CRUD operations for products.
    """

    def __init__(self):
        self.db = get_supabase_client()
        self.table = "products"

    # ===================
    # READ OPERATIONS
    # ===================

    def get_all(
        self,
        department: Optional[Department] = None,
        product_type: Optional[ProductType] = None,
        search: Optional[str] = None,
        active_only: bool = True
    ) -> list[ProductResponse]:
        """
        Get all products with optional filters.

        Args:
            department: Filter by department (pets/food)
            product_type: Filter by product kind
            search: Substring over name, SKU, brand and article number
            active_only: Only return active products

        Returns:
            List of products, name ascending
        """
        logger.info(
            "getting_products",
            department=department,
            product_type=product_type,
            active_only=active_only
        )

        try:
            query = self.db.table(self.table).select("*")

            if active_only:
                query = query.eq("is_active", True)
            if department:
                query = query.eq("department", department.value)
            if product_type:
                query = query.eq("product_type", product_type.value)

            result = query.order("name").execute()

            products = [product_from_row(row) for row in result.data]

        except Exception as e:
            logger.error("get_products_failed", error=str(e))
            raise DatabaseError("select", str(e))

        if search:
            products = [
                p for p in products
                if matches_query(search, p.name, p.sku, p.brand, p.artikel_nr)
            ]

        logger.info("products_retrieved", count=len(products))
        return products

    def get_by_id(self, product_id: str) -> ProductResponse:
        """
        Get a single product by ID.

        Args:
            product_id: Product ID

        Returns:
            ProductResponse

        Raises:
            ProductNotFoundError: If product doesn't exist
        """
        logger.debug("getting_product", product_id=product_id)

        try:
            result = (
                self.db.table(self.table)
                .select("*")
                .eq("id", product_id)
                .execute()
            )

            if not result.data:
                raise ProductNotFoundError(product_id)

            return product_from_row(result.data[0])

        except ProductNotFoundError:
            raise
        except Exception as e:
            logger.error(
                "get_product_failed",
                product_id=product_id,
                error=str(e)
            )
            raise DatabaseError("select", str(e))

    def get_by_ids(self, product_ids: list[str]) -> dict[str, ProductResponse]:
        """
        Look up several products at once.

        Args:
            product_ids: Product IDs (unknown IDs are skipped)

        Returns:
            Dict of product ID -> ProductResponse
        """
        if not product_ids:
            return {}

        try:
            result = (
                self.db.table(self.table)
                .select("*")
                .in_("id", list(set(product_ids)))
                .execute()
            )
            return {str(row["id"]): product_from_row(row) for row in result.data}

        except Exception as e:
            logger.error(
                "get_products_by_ids_failed",
                count=len(product_ids),
                error=str(e)
            )
            raise DatabaseError("select", str(e))

    # ===================
    # WRITE OPERATIONS
    # ===================

    def create(self, data: ProductCreate) -> ProductResponse:
        """
        Create a new product.

        Args:
            data: Product creation data

        Returns:
            Created ProductResponse
        """
        return self.create_many([data])[0]

    def create_many(self, products: list[ProductCreate]) -> list[ProductResponse]:
        """
        Insert several products in one call.

        Args:
            products: Products to create

        Returns:
            Created products in input order
        """
        logger.info("creating_products", count=len(products))

        if not products:
            return []

        try:
            result = (
                self.db.table(self.table)
                .insert([product_to_row(p) for p in products])
                .execute()
            )

            created = [product_from_row(row) for row in result.data]

        except Exception as e:
            logger.error(
                "create_products_failed",
                count=len(products),
                error=str(e)
            )
            raise DatabaseError("insert", str(e))

        logger.info("products_created", count=len(created))
        invalidation.publish(Resource.PRODUCT)
        return created

    def update(self, product_id: str, data: ProductUpdate) -> ProductResponse:
        """
        Update an existing product.

        Args:
            product_id: Product ID
            data: Fields to update

        Returns:
            Updated ProductResponse

        Raises:
            ProductNotFoundError: If product doesn't exist
        """
        logger.info("updating_product", product_id=product_id)

        existing = self.get_by_id(product_id)

        update_data = product_to_row(data, partial=True)
        if not update_data:
            return existing

        kind = update_data.get("product_type", existing.product_type.value)
        if kind in ("palette", "schuette"):
            update_data["price"] = 0.0

        try:
            result = (
                self.db.table(self.table)
                .update(update_data)
                .eq("id", product_id)
                .execute()
            )

            product = product_from_row(result.data[0])

        except Exception as e:
            logger.error(
                "update_product_failed",
                product_id=product_id,
                error=str(e)
            )
            raise DatabaseError("update", str(e))

        logger.info(
            "product_updated",
            product_id=product_id,
            fields=list(update_data.keys())
        )
        invalidation.publish(Resource.PRODUCT, product_id)
        return product

    def delete(self, product_id: str) -> bool:
        """
        Soft delete a product (set is_active=False).

        Args:
            product_id: Product ID

        Returns:
            True if deleted

        Raises:
            ProductNotFoundError: If product doesn't exist
        """
        logger.info("deleting_product", product_id=product_id)

        self.get_by_id(product_id)

        try:
            self.db.table(self.table).update(
                {"is_active": False}
            ).eq("id", product_id).execute()

        except Exception as e:
            logger.error(
                "delete_product_failed",
                product_id=product_id,
                error=str(e)
            )
            raise DatabaseError("update", str(e))

        logger.info("product_deleted", product_id=product_id)
        invalidation.publish(Resource.PRODUCT, product_id)
        return True


# Singleton instance
_product_service: Optional[ProductService] = None


def get_product_service() -> ProductService:
    """Get or create product service instance."""
    global _product_service
    if _product_service is None:
        _product_service = ProductService()
    return _product_service
