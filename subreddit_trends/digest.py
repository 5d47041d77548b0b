"""
Digest scheduling and composition for email subscribers.

The subscription store and the mail transport live outside this package; the
runner receives subscriptions and an async ``sender`` callable and reports the
canonical name that the caller should persist for each subscription.
"""

import html
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Awaitable, Callable, Iterable, List, Optional

from subreddit_trends.errors import SubredditNotFound, TrendsError, Unavailable
from subreddit_trends.models import Post
from subreddit_trends.service import TrendsService

logger = logging.getLogger(__name__)

DIGEST_SIZE = 5
DAILY_MIN_GAP = timedelta(hours=20)
WEEKLY_MIN_GAP = timedelta(days=6.5)
MONDAY = 0


@dataclass
class Subscription:
    """A confirmed subscriber as handed over by the subscription store."""

    email: str
    subreddit: str
    timeframe: str = "week"
    last_sent: Optional[datetime] = None
    id: Optional[int] = None


@dataclass(frozen=True)
class Digest:
    """A rendered digest email."""

    subject: str
    html: str
    text: str


@dataclass
class DigestOutcome:
    """What happened to one subscription during a run."""

    subscription: Subscription
    status: str  # "sent", "skipped", "not_found" or "failed"
    canonical: Optional[str] = None
    error: Optional[str] = None


Sender = Callable[[str, Digest], Awaitable[None]]


def is_due(subscription: Subscription, now: Optional[datetime] = None) -> bool:
    """
    Whether a digest should be sent now.

    Daily (and unrecognized) timeframes are due 20 hours after the last send.
    Weekly digests go out on Mondays (UTC), at least 6.5 days apart.
    """
    now = now or datetime.now(timezone.utc)
    last = subscription.last_sent

    if subscription.timeframe == "week":
        monday = now.weekday() == MONDAY
        if last is None:
            return monday
        return monday and (now - last) >= WEEKLY_MIN_GAP

    if last is None:
        return True
    return (now - last) >= DAILY_MIN_GAP


def digest_timeframe(subscription: Subscription) -> str:
    return "day" if subscription.timeframe == "day" else "week"


def render_digest(canonical: str, timeframe: str, posts: List[Post], subscribed_as: str) -> Digest:
    """
    Render subject, HTML and plain-text bodies for one subscriber.

    Titles are escaped here, at the presentation layer.
    """
    top = posts[:DIGEST_SIZE]
    subject = f"Top posts from r/{canonical} ({timeframe})"

    if top:
        items = "".join(
            f'<li><a href="{html.escape(post.link, quote=True)}">{html.escape(post.title)}</a></li>'
            for post in top
        )
        list_html = f"<ol>{items}</ol>"
        list_text = "\n".join(f"{i}. {post.title}\n{post.link}" for i, post in enumerate(top, start=1))
    else:
        list_html = "<p>No top posts found today (may be gated or empty).</p>"
        list_text = "No posts found."

    body_html = (
        '<div style="font-family:system-ui,-apple-system,Segoe UI,Roboto,sans-serif">'
        f"<h2>r/{html.escape(canonical)} - {html.escape(timeframe)} digest</h2>"
        f"{list_html}"
        '<p style="font-size:12px;color:#666">'
        f"You're receiving this because you subscribed to r/{html.escape(subscribed_as)}."
        "<br/>Change timeframe by re-subscribing with a different option.</p>"
        "</div>"
    )
    body_text = f"Top posts from r/{canonical} ({timeframe}):\n{list_text}"
    return Digest(subject=subject, html=body_html, text=body_text)


class DigestRunner:
    """Sends due digests for a batch of subscriptions."""

    def __init__(self, service: TrendsService, sender: Sender):
        self.service = service
        self.sender = sender

    async def run(self, subscriptions: Iterable[Subscription], now: Optional[datetime] = None) -> List[DigestOutcome]:
        """
        Process every subscription; one failure never stops the batch.

        Returns:
            One outcome per subscription, in input order
        """
        now = now or datetime.now(timezone.utc)
        outcomes: List[DigestOutcome] = []
        for subscription in subscriptions:
            if not is_due(subscription, now):
                outcomes.append(DigestOutcome(subscription, "skipped"))
                continue
            outcomes.append(await self._process(subscription))

        sent = sum(1 for outcome in outcomes if outcome.status == "sent")
        logger.info(f"Digest run finished: {sent} sent, {len(outcomes) - sent} not sent")
        return outcomes

    async def _process(self, subscription: Subscription) -> DigestOutcome:
        timeframe = digest_timeframe(subscription)
        canonical = None
        try:
            info = await self.service.resolve(subscription.subreddit)
            if not info.exists:
                raise SubredditNotFound(subscription.subreddit)
            canonical = info.canonical
            try:
                posts = await self.service.fetch_top(canonical, timeframe)
            except Unavailable as e:
                # The digest still goes out with a "no posts" notice
                logger.warning(f"No posts for r/{canonical}: {e}")
                posts = []
            digest = render_digest(canonical, subscription.timeframe, posts, subscription.subreddit)
            await self.sender(subscription.email, digest)
        except SubredditNotFound:
            logger.info(f"Skip {subscription.email}: subreddit not found: {subscription.subreddit}")
            return DigestOutcome(subscription, "not_found")
        except TrendsError as e:
            logger.error(f"Failed {subscription.email} / {subscription.subreddit}: {e}")
            return DigestOutcome(subscription, "failed", canonical=canonical, error=str(e))
        except Exception as e:
            # Delivery errors come from the external mail transport
            logger.error(f"Delivery failed for {subscription.email}: {e}", exc_info=True)
            return DigestOutcome(subscription, "failed", canonical=canonical, error=str(e))

        logger.info(f"Sent digest to {subscription.email} for r/{canonical}")
        return DigestOutcome(subscription, "sent", canonical=canonical)
