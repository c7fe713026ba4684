"""
Source ingestion: searching social media platforms for candidate posts.
"""

import logging
from typing import Optional, Protocol

import requests
from dateutil import parser as dateparser

from teslajustice.core.config import (
    SEARCH_RESULT_COUNT,
    TWITTER_API_HOST,
    TWITTER_API_KEY,
    TWITTER_API_URL,
    TWITTER_TIMEOUT,
)
from teslajustice.core.errors import IngestorError
from teslajustice.data.schemas import MediaItem, SearchPage, SourceCreate

logger = logging.getLogger(__name__)


class SourceIngestor(Protocol):
    platform: str

    def search(self, query: str, count: int = SEARCH_RESULT_COUNT,
               cursor: Optional[str] = None) -> SearchPage:
        ...

    def fetch_replies(self, platform_id: str) -> list[SourceCreate]:
        ...


class TwitterIngestor:
    """
    Searches Twitter through a RapidAPI-hosted timeline API.

    Responses use the GraphQL timeline layout: tweets sit under
    ``result.timeline.instructions[].entries[]``.
    """

    platform = "twitter"

    def __init__(self, api_key: Optional[str] = None, base_url: str = TWITTER_API_URL,
                 host: str = TWITTER_API_HOST, timeout: int = TWITTER_TIMEOUT):
        self.api_key = api_key if api_key is not None else TWITTER_API_KEY
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = requests.Session()
        self.session.headers.update({
            "User-Agent": "TeslaJustice Monitor/0.1",
            "x-rapidapi-key": self.api_key,
            "x-rapidapi-host": host,
        })

    def search(self, query: str, count: int = SEARCH_RESULT_COUNT,
               cursor: Optional[str] = None) -> SearchPage:
        """Search recent tweets matching ``query``."""
        if not self.api_key:
            logger.warning(f"Twitter API key not configured. Skipping search for {query!r}.")
            return SearchPage()

        params = {"type": "Latest", "count": count, "query": query}
        if cursor:
            params["cursor"] = cursor

        data = self._get("/search-v2", params)
        tweets = self._extract_tweets(data)
        posts = [p for p in (self.convert_to_source(t) for t in tweets) if p is not None]
        next_cursor = (data.get("cursor") or {}).get("bottom")
        logger.info(f"Twitter search {query!r}: {len(posts)} posts")
        return SearchPage(posts=posts, next_cursor=next_cursor, raw_count=len(tweets))

    def fetch_replies(self, platform_id: str) -> list[SourceCreate]:
        """Fetch replies to a tweet."""
        if not self.api_key:
            return []
        data = self._get("/comments", {"pid": platform_id, "count": SEARCH_RESULT_COUNT})
        replies = []
        for tweet in self._extract_tweets(data):
            post = self.convert_to_source(tweet)
            if post is None or post.platform_id == platform_id:
                continue
            post.is_reply = True
            post.reply_to_id = platform_id
            replies.append(post)
        return replies

    def _get(self, path: str, params: dict) -> dict:
        try:
            response = self.session.get(f"{self.base_url}{path}", params=params, timeout=self.timeout)
            response.raise_for_status()
            return response.json()
        except requests.RequestException as e:
            logger.error(f"Twitter request {path} failed: {e}")
            raise IngestorError(f"Twitter request {path} failed: {e}") from e
        except ValueError as e:
            raise IngestorError(f"Twitter returned invalid JSON for {path}: {e}") from e

    @staticmethod
    def _extract_tweets(data: dict) -> list[dict]:
        tweets = []
        instructions = ((data.get("result") or {}).get("timeline") or {}).get("instructions") or []
        for instruction in instructions:
            for entry in instruction.get("entries") or []:
                content = entry.get("content") or {}
                item_contents = [content.get("itemContent")]
                item_contents += [(i.get("item") or {}).get("itemContent") for i in content.get("items") or []]
                for item_content in item_contents:
                    result = ((item_content or {}).get("tweet_results") or {}).get("result")
                    if result:
                        tweets.append(result.get("tweet", result))
        return tweets

    def convert_to_source(self, tweet: dict) -> Optional[SourceCreate]:
        """Convert a timeline tweet object to a source record."""
        legacy = tweet.get("legacy") or {}
        text = legacy.get("full_text", "")
        tweet_id = tweet.get("rest_id") or legacy.get("id_str")
        if not tweet_id or not text.strip():
            return None

        user = ((tweet.get("core") or {}).get("user_results") or {}).get("result") or {}
        user_legacy = user.get("legacy") or {}
        username = user_legacy.get("screen_name", "")

        try:
            posted_at = dateparser.parse(legacy["created_at"])
        except (KeyError, ValueError, OverflowError):
            logger.debug(f"Tweet {tweet_id} has no usable timestamp")
            return None

        return SourceCreate(
            platform="twitter",
            platform_id=str(tweet_id),
            url=f"https://twitter.com/{username}/status/{tweet_id}",
            author_username=username,
            author_display_name=user_legacy.get("name", ""),
            author_avatar_url=user_legacy.get("profile_image_url_https", ""),
            content=text,
            posted_at=posted_at,
            is_reply=bool(legacy.get("in_reply_to_status_id_str")),
            reply_to_id=legacy.get("in_reply_to_status_id_str"),
            media=self.extract_media(legacy),
        )

    @staticmethod
    def extract_media(legacy: dict) -> list[MediaItem]:
        media_items = []

        for media in (legacy.get("entities") or {}).get("media") or []:
            if media.get("media_url_https"):
                large = (media.get("sizes") or {}).get("large") or {}
                media_items.append(MediaItem(
                    type=media.get("type") or "photo",
                    url=media["media_url_https"],
                    width=large.get("w", 0),
                    height=large.get("h", 0),
                ))

        # Videos only appear in extended entities; keep the highest bitrate mp4
        for media in (legacy.get("extended_entities") or {}).get("media") or []:
            variants = (media.get("video_info") or {}).get("variants") or []
            videos = sorted(
                (v for v in variants if v.get("content_type") == "video/mp4" and v.get("bitrate")),
                key=lambda v: v["bitrate"],
                reverse=True,
            )
            if videos:
                large = (media.get("sizes") or {}).get("large") or {}
                media_items.append(MediaItem(
                    type="video",
                    url=videos[0]["url"],
                    width=large.get("w", 0),
                    height=large.get("h", 0),
                    duration=(media["video_info"].get("duration_millis") or 0) / 1000,
                ))

        return media_items
