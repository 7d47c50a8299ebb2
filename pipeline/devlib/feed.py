"""
RSS 2.0 feed over the published digest pages.
"""

import asyncio
from dataclasses import dataclass
from datetime import datetime
from datetime import timezone
from email.utils import format_datetime

from devlib import html_renderer
from devlib import notion_store
from devlib import pipeline_text_utils


FEED_ITEM_LIMIT = 20
CDATA_END = "]]>"
CDATA_END_SPLIT = "]]]]><![CDATA[>"
CONTENT_NS = "http://purl.org/rss/1.0/modules/content/"


#============================================
@dataclass(frozen=True)
class FeedItem:
	title: str
	link: str
	description: str
	content_html: str
	pub_date: str


#============================================
def escape_xml(text) -> str:
	return (
		str(text)
		.replace("&", "&amp;")
		.replace("<", "&lt;")
		.replace(">", "&gt;")
		.replace('"', "&quot;")
		.replace("'", "&apos;")
	)


#============================================
def wrap_cdata(text: str) -> str:
	"""
	Wrap text in CDATA, splitting any ]]> so the section cannot close early.
	"""
	return "<![CDATA[" + (text or "").replace(CDATA_END, CDATA_END_SPLIT) + "]]>"


#============================================
def post_link(base_url: str, page_id: str) -> str:
	return f"{base_url.rstrip('/')}/post/{page_id.replace('-', '')}"


#============================================
def rfc822_date(iso_text: str) -> str:
	"""
	Convert an ISO 8601 timestamp to an RFC 822 date, epoch when missing.
	"""
	if iso_text:
		value = datetime.fromisoformat(iso_text.replace("Z", "+00:00"))
	else:
		value = datetime.fromtimestamp(0, tz=timezone.utc)
	if value.tzinfo is None:
		value = value.replace(tzinfo=timezone.utc)
	return format_datetime(value.astimezone(timezone.utc), usegmt=True)


#============================================
def build_feed_item(summary, rendered, base_url: str) -> FeedItem:
	link = post_link(base_url, summary.id)
	excerpt = pipeline_text_utils.strip_html(rendered.html) or summary.title or ""
	return FeedItem(
		title=escape_xml(summary.title or "Untitled"),
		link=link,
		description=escape_xml(excerpt),
		content_html=rendered.html,
		pub_date=rfc822_date(summary.created_time),
	)


#============================================
def render_item(item: FeedItem) -> str:
	return (
		"\n    <item>"
		+ f"\n      <title>{item.title}</title>"
		+ f"\n      <link>{escape_xml(item.link)}</link>"
		+ f"\n      <description>{item.description}</description>"
		+ f"\n      <pubDate>{item.pub_date}</pubDate>"
		+ f'\n      <guid isPermaLink="true">{escape_xml(item.link)}</guid>'
		+ f"\n      <content:encoded>{wrap_cdata(item.content_html)}</content:encoded>"
		+ "\n    </item>"
	)


#============================================
def render_rss(items, base_url: str, title: str, description: str, now: datetime) -> str:
	"""
	Render the RSS document for already-built feed items.
	"""
	base = escape_xml(base_url)
	last_build = format_datetime(now.astimezone(timezone.utc), usegmt=True)
	item_text = "".join(render_item(item) for item in items)
	return (
		'<?xml version="1.0" encoding="UTF-8"?>\n'
		+ f'<rss version="2.0" xmlns:atom="http://www.w3.org/2005/Atom" xmlns:content="{CONTENT_NS}">\n'
		+ "  <channel>\n"
		+ f"    <title>{escape_xml(title)}</title>\n"
		+ f"    <link>{base}</link>\n"
		+ f"    <description>{escape_xml(description)}</description>\n"
		+ "    <language>en-us</language>\n"
		+ f"    <lastBuildDate>{last_build}</lastBuildDate>\n"
		+ f'    <atom:link href="{base}/api/feed" rel="self" type="application/rss+xml"/>'
		+ item_text
		+ "\n  </channel>\n"
		+ "</rss>\n"
	)


#============================================
async def build_feed(
	store,
	parent_id: str,
	base_url: str,
	title: str,
	description: str,
	now: datetime | None = None,
) -> str:
	"""
	Build the feed for the newest posts, rendering each post concurrently.

	One failing post render fails the whole feed.
	"""
	if now is None:
		now = datetime.now(timezone.utc)
	summaries = await asyncio.to_thread(notion_store.list_child_pages, store, parent_id)
	summaries = summaries[:FEED_ITEM_LIMIT]
	rendered_pages = await asyncio.gather(
		*[
			asyncio.to_thread(html_renderer.render_page, store, summary.id)
			for summary in summaries
		]
	)
	items = [
		build_feed_item(summary, rendered, base_url)
		for summary, rendered in zip(summaries, rendered_pages)
	]
	return render_rss(items, base_url, title, description, now)
