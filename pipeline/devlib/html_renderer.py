"""
Render Notion block payloads to semantic HTML.
"""

from dataclasses import dataclass
from datetime import datetime
from datetime import timezone

from devlib import markdown_blocks


PAGE_SIZE = 100
SKIPPED_TYPES = {"child_page", "child_database"}
TEXT_BLOCK_TYPES = {
	"heading_1",
	"heading_2",
	"heading_3",
	"paragraph",
	"bulleted_list_item",
	"numbered_list_item",
	"quote",
	"code",
	"to_do",
	"toggle",
}
KNOWN_BLOCK_TYPES = TEXT_BLOCK_TYPES | SKIPPED_TYPES | {"divider"}
UNSUPPORTED = "unsupported"


#============================================
@dataclass(frozen=True)
class RichTextRun:
	plain_text: str
	bold: bool = False
	italic: bool = False
	code: bool = False
	strikethrough: bool = False
	href: str | None = None


#============================================
@dataclass(frozen=True)
class RemoteBlock:
	"""
	One store block reduced to the fields the renderer reads.

	block_type is one of KNOWN_BLOCK_TYPES or UNSUPPORTED; source_type keeps
	the tag the store sent.
	"""

	block_type: str
	source_type: str
	block_id: str = ""
	rich_text: tuple = ()
	language: str = markdown_blocks.DEFAULT_CODE_LANGUAGE
	checked: bool = False
	title: str = ""


#============================================
@dataclass(frozen=True)
class RenderedPage:
	title: str
	html: str
	created_time: str


#============================================
def escape_html(text) -> str:
	"""
	Escape text for HTML element content and attribute values.
	"""
	return (
		str(text)
		.replace("&", "&amp;")
		.replace("<", "&lt;")
		.replace(">", "&gt;")
		.replace('"', "&quot;")
	)


#============================================
def parse_rich_text_run(item: dict) -> RichTextRun:
	"""
	Build a RichTextRun from one Notion rich-text object.
	"""
	if not isinstance(item, dict):
		return RichTextRun("")
	plain_text = item.get("plain_text")
	if plain_text is None:
		# request-shaped objects carry text.content instead of plain_text
		text_payload = item.get("text") or {}
		plain_text = text_payload.get("content", "") if isinstance(text_payload, dict) else ""
	annotations = item.get("annotations") or {}
	href = item.get("href")
	if not href:
		text_payload = item.get("text") or {}
		link = text_payload.get("link") if isinstance(text_payload, dict) else None
		if isinstance(link, dict):
			href = link.get("url")
	return RichTextRun(
		plain_text=str(plain_text or ""),
		bold=bool(annotations.get("bold")),
		italic=bool(annotations.get("italic")),
		code=bool(annotations.get("code")),
		strikethrough=bool(annotations.get("strikethrough")),
		href=href or None,
	)


#============================================
def parse_remote_block(payload: dict) -> RemoteBlock:
	"""
	Reduce a raw block payload to a RemoteBlock, never raising on unknown tags.
	"""
	if not isinstance(payload, dict):
		return RemoteBlock(block_type=UNSUPPORTED, source_type="")
	source_type = str(payload.get("type") or "")
	block_id = str(payload.get("id") or "")
	if source_type not in KNOWN_BLOCK_TYPES:
		return RemoteBlock(block_type=UNSUPPORTED, source_type=source_type, block_id=block_id)
	data = payload.get(source_type)
	if not isinstance(data, dict):
		data = {}
	raw_runs = data.get("rich_text")
	if not isinstance(raw_runs, list):
		raw_runs = []
	return RemoteBlock(
		block_type=source_type,
		source_type=source_type,
		block_id=block_id,
		rich_text=tuple(parse_rich_text_run(item) for item in raw_runs),
		language=str(data.get("language") or markdown_blocks.DEFAULT_CODE_LANGUAGE),
		checked=bool(data.get("checked")),
		title=str(data.get("title") or ""),
	)


#============================================
def run_to_html(run: RichTextRun) -> str:
	"""
	Render one run, nesting annotations innermost-first with the link outermost.
	"""
	html = escape_html(run.plain_text)
	if run.bold:
		html = f"<strong>{html}</strong>"
	if run.italic:
		html = f"<em>{html}</em>"
	if run.code:
		html = f"<code>{html}</code>"
	if run.strikethrough:
		html = f"<s>{html}</s>"
	if run.href:
		html = f'<a href="{escape_html(run.href)}" rel="noopener noreferrer">{html}</a>'
	return html


#============================================
def rich_text_to_html(runs) -> str:
	return "".join(run_to_html(run) for run in runs)


#============================================
def plain_text(runs) -> str:
	return "".join(run.plain_text for run in runs)


#============================================
def _render_heading(block: RemoteBlock, content: str) -> str:
	level = block.block_type[-1]
	return f"<h{level}>{content}</h{level}>"


def _render_paragraph(block: RemoteBlock, content: str) -> str:
	return f"<p>{content}</p>" if content else ""


def _render_list_item(block: RemoteBlock, content: str) -> str:
	return f"<li>{content or '&nbsp;'}</li>"


def _render_quote(block: RemoteBlock, content: str) -> str:
	return f"<blockquote><p>{content or '&nbsp;'}</p></blockquote>"


def _render_code(block: RemoteBlock, content: str) -> str:
	language = escape_html(block.language)
	code_text = escape_html(plain_text(block.rich_text))
	return f'<pre><code class="language-{language}">{code_text}</code></pre>'


def _render_to_do(block: RemoteBlock, content: str) -> str:
	checked = " checked" if block.checked else ""
	return f'<p><input type="checkbox" disabled{checked}> {content}</p>'


def _render_toggle(block: RemoteBlock, content: str) -> str:
	return f"<details><summary>{content}</summary></details>"


def _render_divider(block: RemoteBlock, content: str) -> str:
	return "<hr>"


def _render_nothing(block: RemoteBlock, content: str) -> str:
	return ""


BLOCK_RENDERERS = {
	"heading_1": _render_heading,
	"heading_2": _render_heading,
	"heading_3": _render_heading,
	"paragraph": _render_paragraph,
	"bulleted_list_item": _render_list_item,
	"numbered_list_item": _render_list_item,
	"quote": _render_quote,
	"code": _render_code,
	"to_do": _render_to_do,
	"toggle": _render_toggle,
	"divider": _render_divider,
	"child_page": _render_nothing,
	"child_database": _render_nothing,
	UNSUPPORTED: _render_nothing,
}


#============================================
def block_to_html(block) -> str:
	"""
	Render one block (RemoteBlock or raw payload) to an HTML fragment.
	"""
	if not isinstance(block, RemoteBlock):
		block = parse_remote_block(block)
	renderer = BLOCK_RENDERERS.get(block.block_type, _render_nothing)
	content = rich_text_to_html(block.rich_text)
	return renderer(block, content)


#============================================
def wrap_list_items(fragments) -> str:
	"""
	Join fragments, merging each run of <li> fragments into one <ul>.
	"""
	out = []
	in_list = False
	for fragment in fragments:
		if fragment.startswith("<li>"):
			if not in_list:
				out.append("<ul>")
				in_list = True
			out.append(fragment)
			continue
		if in_list:
			out.append("</ul>")
			in_list = False
		out.append(fragment)
	if in_list:
		out.append("</ul>")
	return "".join(out)


#============================================
def render_blocks(blocks) -> str:
	"""
	Render a block sequence to HTML, skipping nested child pages and databases.
	"""
	fragments = []
	for payload in blocks:
		block = payload if isinstance(payload, RemoteBlock) else parse_remote_block(payload)
		if block.block_type in SKIPPED_TYPES:
			continue
		fragment = block_to_html(block)
		if fragment:
			fragments.append(fragment)
	return wrap_list_items(fragments)


#============================================
def extract_page_title(page: dict) -> str:
	"""
	Return the first title-kind property's text, or Untitled.
	"""
	properties = page.get("properties") or {}
	for prop in properties.values():
		if not isinstance(prop, dict):
			continue
		title_runs = prop.get("title")
		if prop.get("type") != "title" and not isinstance(title_runs, list):
			continue
		if not isinstance(title_runs, list):
			title_runs = []
		text = plain_text(parse_rich_text_run(item) for item in title_runs)
		return text or "Untitled"
	return "Untitled"


#============================================
def iter_child_blocks(store, block_id: str, logger=None):
	"""
	Yield every child block of block_id, following next_cursor until exhausted.
	"""
	cursor = None
	page_count = 0
	while True:
		response = store.list_block_children(block_id, start_cursor=cursor, page_size=PAGE_SIZE)
		page_count += 1
		results = response.get("results") or []
		if logger:
			logger(f"Block page {page_count} for {block_id}: {len(results)} block(s).")
		for block in results:
			yield block
		cursor = response.get("next_cursor")
		if not response.get("has_more", True) or not cursor:
			break


#============================================
def render_page(store, page_id: str, logger=None) -> RenderedPage:
	"""
	Fetch one page and all its child blocks and render them to HTML.
	"""
	page = store.retrieve_page(page_id)
	title = extract_page_title(page)
	created_time = page.get("created_time") or datetime.now(timezone.utc).isoformat()
	html = render_blocks(iter_child_blocks(store, page_id, logger=logger))
	return RenderedPage(title=title, html=html, created_time=created_time)


#============================================
def render_markdown_html(text: str) -> str:
	"""
	Render digest Markdown to HTML through the block payload model.
	"""
	return render_blocks(markdown_blocks.markdown_to_payloads(text))
