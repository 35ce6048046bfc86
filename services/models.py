from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class DrinkIngredient:
    id: str
    category: str
    text: str


@dataclass(frozen=True)
class Drink:
    id: str
    name: str
    rating: int
    story: str = ""
    ingredients: List[DrinkIngredient] = field(default_factory=list)
    video_url: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Drink":
        return cls(
            id=str(data["id"]),
            name=str(data.get("name") or ""),
            rating=int(data.get("rating") or 0),
            story=str(data.get("story") or ""),
            ingredients=[
                DrinkIngredient(
                    id=str(item.get("id") or ""),
                    category=str(item.get("category") or ""),
                    text=str(item.get("text") or ""),
                )
                for item in data.get("ingredients") or []
            ],
            video_url=data.get("video_url") or None,
        )


@dataclass(frozen=True)
class CatalogIngredient:
    id: str
    name: str
    category: str
    description: str = ""


@dataclass(frozen=True)
class SearchPage:
    items: List[Any]
    total: int


@dataclass(frozen=True)
class User:
    id: int
    username: str = ""
    first_name: str = ""
    last_name: str = ""

    @property
    def full_name(self) -> str:
        return " ".join(part for part in (self.first_name, self.last_name) if part).strip()


@dataclass(frozen=True)
class Chat:
    id: int
    type: str = "private"

    @property
    def is_private(self) -> bool:
        return self.type == "private"


@dataclass(frozen=True)
class OwnedIngredient:
    code: str
    name: str
    category: str
    chat_id: int
    owner: User
