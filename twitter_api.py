"""
Twitter/X API v2 client.

Search uses an app-only bearer token obtained from the API key/secret. Posting
needs the user-level access token pair and is signed with OAuth 1.0a.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

import requests
from requests_oauthlib import OAuth1

from agentlink_config import AgentLinkConfig
from agentlink_errors import MalformedResponseError, MissingCredentialError, ProviderError, ValidationError
from agentlink_types import Configured, Provider, Unconfigured

logger = logging.getLogger(__name__)

TWITTER_API_BASE = "https://api.twitter.com"
REQUEST_TIMEOUT = 15

# Limits of GET /2/tweets/search/recent
SEARCH_MIN_RESULTS = 10
SEARCH_MAX_RESULTS = 100


@dataclass(frozen=True)
class Tweet:
    id: str
    text: str
    created_at: str | None = None
    author_id: str | None = None
    author_name: str | None = None
    author_username: str | None = None
    like_count: int | None = None
    retweet_count: int | None = None
    reply_count: int | None = None

    def to_dict(self) -> dict[str, Any]:
        data = {
            "id": self.id,
            "text": self.text,
            "createdAt": self.created_at,
            "authorId": self.author_id,
            "authorName": self.author_name,
            "authorUsername": self.author_username,
            "likeCount": self.like_count,
            "retweetCount": self.retweet_count,
            "replyCount": self.reply_count,
        }
        return {key: value for key, value in data.items() if value is not None}


class TwitterAPI:
    def __init__(
        self,
        api_key: str,
        api_key_secret: str,
        access_token: str | None = None,
        access_token_secret: str | None = None,
        base_url: str = TWITTER_API_BASE,
    ) -> None:
        if not api_key or not api_key_secret:
            raise ValueError("Twitter API key and secret are required")
        self._api_key = api_key
        self._api_key_secret = api_key_secret
        self._access_token = access_token
        self._access_token_secret = access_token_secret
        self.base_url = base_url.rstrip("/")

    @property
    def can_post(self) -> bool:
        return bool(self._access_token and self._access_token_secret)

    # -----------------------------------------------------------------------
    # Auth
    # -----------------------------------------------------------------------

    def _bearer_token(self) -> str:
        try:
            resp = requests.post(
                f"{self.base_url}/oauth2/token",
                auth=(self._api_key, self._api_key_secret),
                data={"grant_type": "client_credentials"},
                timeout=REQUEST_TIMEOUT,
            )
            resp.raise_for_status()
            data = resp.json()
        except requests.exceptions.RequestException as exc:
            raise ProviderError(f"Failed to authenticate with Twitter: {exc}") from exc
        except ValueError as exc:
            raise MalformedResponseError("Invalid JSON in Twitter token response") from exc

        token = data.get("access_token") if isinstance(data, dict) else None
        if not token:
            raise MalformedResponseError("Twitter token response has no access_token.")
        return token

    # -----------------------------------------------------------------------
    # Search
    # -----------------------------------------------------------------------

    def search_tweets(self, query: str, count: int = 10) -> list[Tweet]:
        """
        Return up to `count` recent tweets matching `query`.

        The endpoint will not serve fewer than 10 results per page, so small
        counts are fetched as 10 and truncated. Counts above 100 would need
        pagination and are rejected.
        """
        if not query or not query.strip():
            raise ValidationError("Missing query.")
        if count < 1 or count > SEARCH_MAX_RESULTS:
            raise ValidationError(f"count must be between 1 and {SEARCH_MAX_RESULTS}.")

        logger.info("Searching tweets with query: %s, count: %s", query, count)
        token = self._bearer_token()
        params = {
            "query": query,
            "max_results": max(count, SEARCH_MIN_RESULTS),
            "tweet.fields": "created_at,author_id,public_metrics",
            "expansions": "author_id",
            "user.fields": "name,username",
        }
        try:
            resp = requests.get(
                f"{self.base_url}/2/tweets/search/recent",
                params=params,
                headers={"Authorization": f"Bearer {token}"},
                timeout=REQUEST_TIMEOUT,
            )
            resp.raise_for_status()
        except requests.exceptions.HTTPError as exc:
            if exc.response is not None and exc.response.status_code == 429:
                raise ProviderError("Twitter rate limit reached. Try again later.") from exc
            raise ProviderError(f"Failed to search tweets: {exc}") from exc
        except requests.exceptions.RequestException as exc:
            raise ProviderError(f"Failed to search tweets: {exc}") from exc

        try:
            data = resp.json()
        except ValueError as exc:
            raise MalformedResponseError("Invalid JSON in tweet search response") from exc
        if not isinstance(data, dict):
            raise MalformedResponseError("Tweet search response is not an object.")

        users = {
            user.get("id"): user
            for user in (data.get("includes") or {}).get("users") or []
            if isinstance(user, dict)
        }

        tweets: list[Tweet] = []
        for item in data.get("data") or []:
            if not isinstance(item, dict) or "id" not in item or "text" not in item:
                raise MalformedResponseError("Tweet search result without id or text.")
            author = users.get(item.get("author_id"), {})
            metrics = item.get("public_metrics") or {}
            tweets.append(
                Tweet(
                    id=str(item["id"]),
                    text=item["text"],
                    created_at=item.get("created_at"),
                    author_id=item.get("author_id"),
                    author_name=author.get("name"),
                    author_username=author.get("username"),
                    like_count=metrics.get("like_count"),
                    retweet_count=metrics.get("retweet_count"),
                    reply_count=metrics.get("reply_count"),
                )
            )
        return tweets[:count]

    # -----------------------------------------------------------------------
    # Post
    # -----------------------------------------------------------------------

    def post_tweet(self, text: str) -> Tweet:
        if not self.can_post:
            raise MissingCredentialError("Access tokens not set. Cannot post tweet.")
        if not text or not text.strip():
            raise ValidationError("Tweet text must not be empty.")

        logger.info("Posting tweet: %s", text)
        auth = OAuth1(
            self._api_key,
            self._api_key_secret,
            self._access_token,
            self._access_token_secret,
        )
        try:
            resp = requests.post(
                f"{self.base_url}/2/tweets",
                json={"text": text},
                auth=auth,
                timeout=REQUEST_TIMEOUT,
            )
            resp.raise_for_status()
        except requests.exceptions.RequestException as exc:
            raise ProviderError(f"Failed to post tweet: {exc}") from exc

        try:
            data = resp.json().get("data")
        except (ValueError, AttributeError) as exc:
            raise MalformedResponseError("Invalid JSON in post tweet response") from exc
        if not isinstance(data, dict) or "id" not in data:
            raise MalformedResponseError("Post tweet response has no tweet id.")

        return Tweet(
            id=str(data["id"]),
            text=data.get("text", text),
            created_at=datetime.now(timezone.utc).isoformat(),
            like_count=0,
            retweet_count=0,
            reply_count=0,
        )


def twitter_provider_from_config(config: AgentLinkConfig) -> Provider[TwitterAPI]:
    if not config.twitter_search_enabled:
        return Unconfigured("TWITTER_API_KEY and TWITTER_API_KEY_SECRET are not set.")
    return Configured(
        TwitterAPI(
            config.twitter_api_key,
            config.twitter_api_key_secret,
            config.twitter_access_token,
            config.twitter_access_token_secret,
        )
    )
