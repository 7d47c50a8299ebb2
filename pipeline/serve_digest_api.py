#!/usr/bin/env python3
import argparse

import uvicorn
from dotenv import load_dotenv

from devlib import digest_api
from devlib import pipeline_settings


#============================================
def parse_args() -> argparse.Namespace:
	"""
	Parse command-line arguments.
	"""
	parser = argparse.ArgumentParser(description="Serve the digest read API and RSS feed.")
	parser.add_argument("--settings", default="settings.yaml", help="YAML settings path.")
	parser.add_argument("--host", default="127.0.0.1", help="Bind address.")
	parser.add_argument("--port", type=int, default=8000, help="Bind port.")
	args = parser.parse_args()
	return args


#============================================
def main() -> None:
	load_dotenv()
	args = parse_args()
	settings, settings_path = pipeline_settings.load_settings(args.settings)
	config = pipeline_settings.build_digest_config(settings)
	digest_api.log_step(f"Using settings file: {settings_path}")
	app = digest_api.create_app(config)
	uvicorn.run(app, host=args.host, port=args.port)


if __name__ == "__main__":
	main()
