"""Category domain service."""

from typing import Optional
from cardrecon.database.base import Database
from cardrecon.domain.entities import Category as CategoryEntity
from cardrecon.domain.errors import ConflictError, NotFoundError, ValidationError


class CategoryService:
    """Service for managing categories."""

    def __init__(self, db: Database):
        """Initialize category service.

        Args:
            db: Database instance
        """
        self.db = db

    def create_category(self, name: str, parent_path: Optional[str] = None) -> int:
        """Create a category.

        Args:
            name: Category name
            parent_path: Optional parent category path (e.g., "Housing")

        Returns:
            Category ID

        Raises:
            ValidationError: If the name is blank or contains '>'
            NotFoundError: If parent category doesn't exist
            ConflictError: If the category already exists under that parent
        """
        name = name.strip()
        if not name or ">" in name:
            raise ValidationError(f"Invalid category name '{name}'")

        parent_id = None
        if parent_path is not None:
            parent = self.db.get_category_by_path(parent_path)
            if parent is None:
                raise NotFoundError(f"Parent category '{parent_path}' not found")
            parent_id = parent.id

        full_path = name if parent_path is None else f"{parent_path} > {name}"
        if self.db.get_category_by_path(full_path) is not None:
            raise ConflictError(f"Category '{full_path}' already exists")

        return self.db.create_category(name=name, parent_id=parent_id)

    def get_category(self, category_id: int) -> Optional[CategoryEntity]:
        """Get category by ID."""
        return self.db.get_category(category_id)

    def get_category_by_path(self, path: str) -> Optional[CategoryEntity]:
        """Get category by path.

        Args:
            path: Category path (e.g., "Housing > Credit Card")

        Returns:
            Category entity or None if not found
        """
        return self.db.get_category_by_path(path)

    def list_categories(self, parent_id: Optional[int] = None) -> list[CategoryEntity]:
        """List categories directly under parent_id (root categories when None)."""
        return self.db.list_categories(parent_id=parent_id)

    def list_category_paths(self) -> list[str]:
        """List the full path of every category, depth first."""
        paths: list[str] = []

        def walk(parent_id: Optional[int], prefix: str) -> None:
            for cat in self.db.list_categories(parent_id=parent_id):
                path = f"{prefix} > {cat.name}" if prefix else cat.name
                paths.append(path)
                walk(cat.id, path)

        walk(None, "")
        return paths

    def format_category_path(self, category_id: int) -> str:
        """Get full path for a category.

        Args:
            category_id: Category ID

        Returns:
            Full category path (e.g., "Housing > Credit Card"), or an empty
            string for an unknown ID
        """
        cat = self.get_category(category_id)
        if cat is None:
            return ""

        path_parts = [cat.name]
        current_parent_id = cat.parent_id

        while current_parent_id is not None:
            parent = self.get_category(current_parent_id)
            if parent is None:
                break
            path_parts.append(parent.name)
            current_parent_id = parent.parent_id

        return " > ".join(reversed(path_parts))
