from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Wire models: snake_case in Python, camelCase on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# --- Profile ---

class Profile(CamelModel):
    username: str
    bio: str | None = None
    image: str | None = None
    following: bool = False


class ForResponseProfile(CamelModel):
    profile: Profile


# --- User ---

class UserCreate(CamelModel):
    username: str = Field(min_length=1, max_length=100)
    email: str = Field(max_length=255)
    password: str = Field(min_length=1)
    bio: str | None = None
    image: str | None = Field(None, max_length=500)


class UserResponse(CamelModel):
    id: int
    username: str
    email: str
    bio: str | None = None
    image: str | None = None
    created_at: str
    updated_at: str


# --- Article requests ---

class ArticlePosted(CamelModel):
    title: str = Field(max_length=300)
    description: str = ""
    body: str
    tag_list: list[str] = Field(default_factory=list)


class ArticleUpdated(CamelModel):
    title: str | None = Field(None, max_length=300)
    description: str | None = None
    body: str | None = None


class ArticleRequest(BaseModel):
    """Filter for the public article list; name filters match usernames."""

    tag: str | None = None
    author: str | None = None
    favorited: str | None = None
    limit: int = 100
    offset: int = 0


# --- Article responses ---

class ArticleForResponse(CamelModel):
    slug: str
    title: str
    description: str
    body: str
    tag_list: list[str] = Field(default_factory=list)
    created_at: str
    updated_at: str
    favorited: bool = False
    favorites_count: int = 0
    author: Profile


class ForResponseArticle(CamelModel):
    article: ArticleForResponse


class ForResponseArticles(CamelModel):
    articles: list[ArticleForResponse] = Field(default_factory=list)
    articles_count: int = 0


# --- Tags ---

class TagsResponse(CamelModel):
    tags: list[str] = Field(default_factory=list)
