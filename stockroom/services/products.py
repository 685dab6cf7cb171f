# stockroom/services/products.py
from stockroom.errors import BusinessRuleError
from stockroom.schemas.product import Product, ProductCreate
from stockroom.services.base import CrudService


class ProductService(CrudService[Product]):
    path = "/products"
    model = Product
    create_schema = ProductCreate

    async def update(self, record_id, patch) -> Product:
        # Generated units are written once at intake
        raise BusinessRuleError(f"Product {record_id} was generated from a receipt and cannot be edited")
