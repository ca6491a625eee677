from .routes import products_router, categories_router
from .service import ProductService, CategoryService, PRODUCTS, CATEGORIES

__all__ = [
    "products_router",
    "categories_router",
    "ProductService",
    "CategoryService",
    "PRODUCTS",
    "CATEGORIES",
]
