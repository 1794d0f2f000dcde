from .source import Source
from .company import Company
from .raw_news import RawNews
from .article import Article
from .token_snapshot import TokenSnapshot

__all__ = ["Source", "Company", "RawNews", "Article", "TokenSnapshot"]
