#!/usr/bin/env python3
import argparse
import asyncio
import sys
from datetime import datetime

import rich.console
from dotenv import load_dotenv

from devlib import notion_store
from devlib import pipeline_settings
from devlib import publisher
from devlib.errors import ConfigurationError
from devlib.github_client import GitHubClient
from devlib.llm_transports import create_llm_transport
from devlib.llm_transports import describe_llm_execution_path


RICH_CONSOLE = rich.console.Console()


#============================================
def log_step(message: str) -> None:
	"""
	Print one timestamped progress line.
	"""
	now_text = datetime.now().strftime("%H:%M:%S")
	line = f"[generate_weekly_digest {now_text}] {message}"
	lower = message.lower()
	style = "cyan"
	if ("failed" in lower) or ("error" in lower):
		style = "bold red"
	elif ("dry run" in lower) or ("quiet-week" in lower):
		style = "yellow"
	elif ("published" in lower) or ("generated" in lower):
		style = "green"
	RICH_CONSOLE.print(line, style=style, markup=False)


#============================================
def parse_args(argv=None) -> argparse.Namespace:
	"""
	Parse command-line arguments.
	"""
	parser = argparse.ArgumentParser(
		description="Generate the weekly dev digest from GitHub activity and publish it to Notion."
	)
	parser.add_argument(
		"--settings",
		default="settings.yaml",
		help="YAML settings path (repositories, LLM provider, Notion parent).",
	)
	parser.add_argument(
		"--dry-run",
		dest="dry_run",
		action="store_true",
		help="Collect and synthesize only; print a preview instead of publishing.",
	)
	args = parser.parse_args(argv)
	return args


#============================================
def run(args: argparse.Namespace) -> publisher.PublishResult:
	"""
	Build collaborators from settings and run one publish.
	"""
	settings, settings_path = pipeline_settings.load_settings(args.settings)
	config = pipeline_settings.build_digest_config(settings)
	log_step(f"Using settings file: {settings_path}")
	if not config.repositories:
		raise ConfigurationError(
			"settings.yaml must list at least one repository under repositories"
		)
	config.require("github_token")
	if not args.dry_run:
		config.require("notion_api_key", "notion_parent_id")
	log_step(
		"LLM execution path for this run: "
		+ describe_llm_execution_path(config.llm_transport, config.llm_model)
	)
	github = GitHubClient(config.github_token, log_fn=log_step)
	backend = create_llm_transport(config)
	store = None
	if not args.dry_run:
		store = notion_store.NotionClient(config.notion_api_key)
	return asyncio.run(
		publisher.publish_weekly_digest(
			config,
			github,
			backend,
			store=store,
			dry_run=args.dry_run,
			logger=log_step,
		)
	)


#============================================
def main(argv=None) -> int:
	"""
	Generate and publish the weekly digest; return a process exit code.
	"""
	load_dotenv()
	args = parse_args(argv)
	log_step("Generating weekly digest.")
	try:
		result = run(args)
	except Exception as error:
		log_step(f"Error: {error}")
		return 1
	if result.dry_run:
		log_step("Dry run: content preview follows (not publishing to Notion).")
		print(result.preview)
		return 0
	log_step(f"Published to Notion: {result.url or result.page_id}")
	return 0


if __name__ == "__main__":
	sys.exit(main())
