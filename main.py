#!/usr/bin/env python3
import argparse
import functools
import sys

import config as cfg
import renamer_core as core
from revert_store import RevertStore, RevertStoreError

def ask_yes_no(question):
    """Blocking yes/no prompt. An empty answer means yes."""
    while True:
        answer = input(f"{question} [Y/n] ").strip().lower()
        if answer in ('', 'y', 'yes'):
            return True
        if answer in ('n', 'no'):
            return False
        print("Please answer 'y' or 'n'.")

def build_parser():
    parser = argparse.ArgumentParser(
        prog="image-renamer",
        description="Rename images to descriptive, date-prefixed names suggested by an Ollama vision model.\nEvery rename is recorded so it can be reverted later with --revert.",
        formatter_class=argparse.RawTextHelpFormatter
    )
    parser.add_argument("paths", nargs="*", help="Image files or directories to process. With --revert, the renamed files to revert.")
    parser.add_argument("-p", "--prompt", action="store_true", help="Prompt to rename or revert each file.")
    parser.add_argument("-r", "--revert", action="store_true", help="Revert file(s) to the original name(s). Without paths, reverts everything recorded.")
    parser.add_argument("--dry-run", action="store_true", help="Show what would be done without touching any file.")
    parser.add_argument("--ollama-host", default=None, help="Ollama server address (overrides config).")
    parser.add_argument("--vision-model", default=None, help="Ollama vision model (overrides config).")
    parser.add_argument("--config", default=None, help="Path to the JSON config file (default: in the data directory).")
    return parser

def main(argv=None):
    parser = build_parser()
    if argv is None:
        argv = sys.argv[1:]
    if not argv:
        parser.print_help()
        sys.exit(2)
    args = parser.parse_args(argv)

    if not args.revert and not args.paths:
        parser.error("at least one path is required unless --revert is given")

    try:
        revert_path = cfg.revert_mappings_path()
        config_file = args.config or cfg.config_path()
    except OSError as e:
        print(f"Error: Failed to get data directory: {e}")
        sys.exit(1)

    store = RevertStore.load(revert_path)
    confirm = ask_yes_no if args.prompt else None
    if args.dry_run: print("DRY RUN MODE: No files will actually be renamed.")

    try:
        if args.revert:
            core.revert_files(store, args.paths, confirm=confirm, dry_run=args.dry_run)
        else:
            config = cfg.load_config(config_file)
            if args.ollama_host: config["ollama_host"] = args.ollama_host
            if args.vision_model: config["models"]["vision_model"] = args.vision_model

            client = core.create_client(config["ollama_host"])
            if client is None:
                print("Error: Ollama is not reachable. Ensure Ollama is running.")
                sys.exit(1)
            suggest = functools.partial(core.get_suggested_name, client, config)
            core.rename_files(args.paths, store, suggest, confirm=confirm, dry_run=args.dry_run)
    except RevertStoreError as e:
        print(f"Error: {e}")
        if args.revert:
            print("Files were reverted but the revert mappings were not updated; stale entries may remain.")
        else:
            print("Files were renamed but the changes were not recorded; they cannot be reverted automatically.")
        sys.exit(1)
    except OSError as e:
        print(f"Error: {e}")
        sys.exit(1)
    except KeyboardInterrupt:
        sys.exit(130)

if __name__ == "__main__":
    main()
