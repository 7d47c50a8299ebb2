"""
Markdown to block conversion for the constrained digest dialect.

The dialect covers headings (levels 1-3), paragraphs, bulleted and numbered
list items, fenced code, and inline **bold** / `code` spans. Each line is
classified once; only fenced code looks ahead.
"""

import re
from dataclasses import dataclass


FENCE = "```"
DEFAULT_CODE_LANGUAGE = "plain text"
NUMBERED_RE = re.compile(r"^\d+\.\s")
INLINE_RE = re.compile(r"\*\*(.+?)\*\*|`(.+?)`")


#============================================
@dataclass(frozen=True)
class InlineSpan:
	text: str
	bold: bool = False
	code: bool = False


#============================================
@dataclass(frozen=True)
class Heading:
	level: int
	spans: tuple
	kind = "heading"


#============================================
@dataclass(frozen=True)
class Paragraph:
	spans: tuple
	kind = "paragraph"


#============================================
@dataclass(frozen=True)
class BulletItem:
	spans: tuple
	kind = "bullet"


#============================================
@dataclass(frozen=True)
class NumberedItem:
	spans: tuple
	kind = "numbered"


#============================================
@dataclass(frozen=True)
class CodeBlock:
	language: str
	text: str
	kind = "code"

	@property
	def spans(self) -> tuple:
		return (InlineSpan(self.text),)


#============================================
def parse_inline(text: str) -> tuple:
	"""
	Split one line into plain, bold, and code spans in textual order.
	"""
	spans = []
	last_index = 0
	for match in INLINE_RE.finditer(text):
		if match.start() > last_index:
			spans.append(InlineSpan(text[last_index:match.start()]))
		if match.group(1) is not None:
			spans.append(InlineSpan(match.group(1), bold=True))
		else:
			spans.append(InlineSpan(match.group(2), code=True))
		last_index = match.end()
	if last_index < len(text):
		spans.append(InlineSpan(text[last_index:]))
	if not spans:
		spans.append(InlineSpan(text))
	return tuple(spans)


#============================================
def classify_line(trimmed: str):
	"""
	Build the block for one non-blank, non-fence line.
	"""
	if trimmed.startswith("### "):
		return Heading(3, parse_inline(trimmed[4:]))
	if trimmed.startswith("## "):
		return Heading(2, parse_inline(trimmed[3:]))
	if trimmed.startswith("# "):
		return Heading(1, parse_inline(trimmed[2:]))
	if trimmed.startswith("- ") or trimmed.startswith("* "):
		return BulletItem(parse_inline(trimmed[2:]))
	if NUMBERED_RE.match(trimmed):
		return NumberedItem(parse_inline(NUMBERED_RE.sub("", trimmed, count=1)))
	return Paragraph(parse_inline(trimmed))


#============================================
def parse_markdown(text: str) -> list:
	"""
	Parse Markdown text into an ordered list of block nodes.
	"""
	blocks = []
	lines = (text or "").split("\n")
	index = 0
	while index < len(lines):
		trimmed = lines[index].strip()
		if not trimmed:
			index += 1
			continue
		if trimmed.startswith(FENCE):
			language = trimmed[len(FENCE):].strip() or DEFAULT_CODE_LANGUAGE
			code_lines = []
			index += 1
			# fence content is copied verbatim, never classified
			while index < len(lines) and not lines[index].strip().startswith(FENCE):
				code_lines.append(lines[index])
				index += 1
			blocks.append(CodeBlock(language, "\n".join(code_lines)))
		else:
			blocks.append(classify_line(trimmed))
		index += 1
	return blocks


#============================================
def span_to_rich_text(span: InlineSpan) -> dict:
	"""
	Serialize one span as a Notion text rich-text object.
	"""
	rich_text = {"type": "text", "text": {"content": span.text}}
	if span.bold:
		rich_text["annotations"] = {"bold": True}
	elif span.code:
		rich_text["annotations"] = {"code": True}
	return rich_text


#============================================
def block_to_payload(node) -> dict:
	"""
	Serialize one block node as a Notion block object.
	"""
	if isinstance(node, CodeBlock):
		block_type = "code"
		body = {
			"rich_text": [span_to_rich_text(InlineSpan(node.text))],
			"language": node.language,
		}
		return {"object": "block", "type": block_type, block_type: body}
	if isinstance(node, Heading):
		block_type = f"heading_{node.level}"
	elif isinstance(node, BulletItem):
		block_type = "bulleted_list_item"
	elif isinstance(node, NumberedItem):
		block_type = "numbered_list_item"
	elif isinstance(node, Paragraph):
		block_type = "paragraph"
	else:
		raise TypeError(f"Unsupported block node: {node!r}")
	body = {"rich_text": [span_to_rich_text(span) for span in node.spans]}
	return {"object": "block", "type": block_type, block_type: body}


#============================================
def blocks_to_payloads(nodes) -> list[dict]:
	return [block_to_payload(node) for node in nodes]


#============================================
def markdown_to_payloads(text: str) -> list[dict]:
	"""
	Parse Markdown and serialize the result as Notion block objects.
	"""
	return blocks_to_payloads(parse_markdown(text))
