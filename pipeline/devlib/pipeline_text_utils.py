import re


WORD_RE = re.compile(r"[A-Za-z0-9']+")
TAG_RE = re.compile(r"<[^>]+>")
SPACE_RE = re.compile(r"\s+")


#============================================
def count_words(text: str) -> int:
	"""
	Count words using a stable regex-based tokenizer.
	"""
	return len(WORD_RE.findall(text or ""))


#============================================
def trim_to_char_limit(text: str, char_limit: int) -> str:
	"""
	Trim text to a maximum character count.
	"""
	clean = (text or "").strip()
	if char_limit <= 0:
		return ""
	if len(clean) <= char_limit:
		return clean
	if char_limit <= 3:
		return clean[:char_limit]
	result = clean[:char_limit - 3].rstrip() + "..."
	return result


#============================================
def strip_html(html: str, char_limit: int = 300) -> str:
	"""
	Drop tags, collapse whitespace, and cut to char_limit characters.
	"""
	text = TAG_RE.sub(" ", html or "")
	text = SPACE_RE.sub(" ", text).strip()
	return text[:char_limit]
