#============================================
class ConfigurationError(RuntimeError):
	"""
	Raised when a required credential or setting is missing.
	"""


#============================================
class UpstreamAPIError(RuntimeError):
	"""
	Raised when GitHub, Notion, or an LLM backend answers with a non-success status.
	"""

	def __init__(self, service: str, status, body: str):
		self.service = service
		self.status = status
		self.body = body
		super().__init__(f"{service} API error {status}: {body}")


#============================================
class EmptyGenerationError(RuntimeError):
	"""
	Raised when the generative backend returns no usable text.
	"""
