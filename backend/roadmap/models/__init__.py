from roadmap.models.base import Base
from roadmap.models.dependency import Dependency, DependencyType
from roadmap.models.milestone import Milestone
from roadmap.models.product import LifecycleStatus, Product, ProductStatus, ProductVersion

__all__ = [
    "Base",
    "Product",
    "ProductStatus",
    "ProductVersion",
    "LifecycleStatus",
    "Milestone",
    "Dependency",
    "DependencyType",
]
