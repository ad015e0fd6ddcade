"""
Interactive CLI adapter for AdStudio.

Architectural role:
- Exposes terminal control over one `StudioSession`.
- Feeds local image files into the asset slots through the file intake boundary.
- Delegates generation, optimization, and history actions to the session.

Interface responsibilities:
- Parse slash commands and plain-text prompts.
- Render batch outcomes, history listings, and session status.
- Offer credential reselection after an authentication failure.

Request lifecycle (per input line):
1. Read stdin.
2. `exit`/`quit` ends the loop.
3. Slash commands mutate session state or trigger actions.
4. Plain text becomes the prompt and starts a generation.

Input validation behavior:
- Empty input is ignored.
- Unknown commands print usage.
- Invalid values (preset ids, ratios, counts, indexes) print the error and keep the
  session unchanged.

Error handling strategy:
- Authentication failures prompt for reselection.
- Other batch failures print the underlying message.
- EOF and keyboard interrupts terminate the loop without traceback output.
"""

from dotenv import load_dotenv

load_dotenv()

import asyncio
import getpass
import logging
import os
import shlex
import sys

from adstudio.api.multimodal.file_input_manager import filter_image_inputs
from adstudio.core.engine import (
    EmptyRequestError,
    GenerationInProgressError,
    StudioSession,
)
from adstudio.core.request_types import ALLOWED_BATCH_COUNTS
from adstudio.image.batch import plan_chunks
from adstudio.image.errors import AuthenticationError, ImageGenerationError
from adstudio.llm.provider_config import EnvCredentialSelector
from adstudio.prompting.presets import CATALOGS


logger = logging.getLogger(__name__)

HELP_TEXT = """Commands:
  /product <file> [file ...]      add product images (max 5)
  /background <file> [file ...]   add background images (max 5)
  /remove product|background <n>  remove image number n
  /reference <file>|clear         set or clear the refine base image
  /prompt <text>                  set the prompt without generating
  /preset [style|angle|theme <id>]  list or select presets
  /tier flash|pro                 select provider tier
  /ratio 1:1|3:4|4:3|9:16|16:9    select aspect ratio
  /size 1K|2K|4K                  select output size (Pro only)
  /count <n>                      images per batch
  /optimize                       rewrite the prompt with the text model
  /generate                       run a batch with the current settings
  /history                        list generated images
  /retry <id>                     re-run the request behind a history entry
  /refine <id>                    use a history image as the refine base
  /export <id> [dir]              save a history image to disk
  /wipe                           clear history
  /status                         show session settings
  exit | quit                     leave
Plain text sets the prompt and generates."""


# =========================================================
# UTF-8 SAFE STDOUT
# =========================================================

if hasattr(sys.stdout, "reconfigure"):
    try:
        sys.stdout.reconfigure(encoding="utf-8", errors="ignore")
    except Exception:
        pass


# =========================================================
# RENDERING
# =========================================================

def print_status(session: StudioSession) -> None:
    """Print slot counts and generation settings."""
    product_images, background_images, reference_image = session.slots.snapshot()
    preset_ids = session.preset_ids()

    print(f"Prompt:      {session.prompt or '(empty)'}")
    print(f"Tier:        {session.tier.value}")
    print(f"Ratio/size:  {session.aspect_ratio.value} / {session.image_size.value}")
    print(f"Batch count: {session.batch_count} "
          f"(chunks {plan_chunks(session.batch_count, session.tier)})")
    for kind in CATALOGS:
        print(f"{kind.capitalize():<12} {preset_ids[kind] or 'custom'}")
    print(f"Products:    {len(product_images)}/5")
    print(f"Backgrounds: {len(background_images)}/5")
    print(f"Reference:   {'set' if reference_image else 'none'}")


def print_history(session: StudioSession) -> None:
    entries = session.history.entries()
    if not entries:
        print("History is empty.")
        return

    for entry in entries:
        request = entry.originating_request
        print(f"{entry.id}  [{request.tier.value} {entry.aspect_ratio.value}]  {entry.prompt_used}")


def print_presets() -> None:
    for kind, catalog in CATALOGS.items():
        print(f"\n{kind}:")
        for preset in catalog:
            print(f"  {preset.id:<12} {preset.name}")
    print()


# =========================================================
# GENERATION
# =========================================================

def run_generation(session: StudioSession, coroutine) -> None:
    """Run a session batch coroutine and render its outcome."""
    print("\nGenerating...\n")
    try:
        entries = asyncio.run(coroutine)
    except EmptyRequestError as e:
        print(str(e))
        return
    except GenerationInProgressError as e:
        print(str(e))
        return
    except AuthenticationError:
        answer = input("Authentication error (403/401). Select a new API key? [y/N] ")
        if answer.strip().lower() in ("y", "yes"):
            session.reselect_credentials()
        return
    except ImageGenerationError as e:
        print(f"Image generation failed: {e}")
        return

    print(f"{len(entries)} image(s) generated:")
    for entry in entries:
        print(f"  {entry.id}")


# =========================================================
# COMMAND DISPATCH
# =========================================================

def handle_command(session: StudioSession, line: str) -> bool:
    """
    Apply one input line to the session.

    Returns:
    - `False` when the loop should stop, otherwise `True`.
    """
    if line.lower() in ("exit", "quit"):
        return False

    if not line.startswith("/"):
        session.prompt = line
        run_generation(session, session.generate())
        return True

    try:
        parts = shlex.split(line)
    except ValueError as e:
        print(f"Could not parse command: {e}")
        return True

    command, args = parts[0].lower(), parts[1:]

    try:
        if command in ("/product", "/background"):
            files = filter_image_inputs(args)
            added = session.slots.add(files, command[1:])
            print(f"Added {added} {command[1:]} image(s).")

        elif command == "/remove" and len(args) == 2:
            session.slots.remove(int(args[1]) - 1, args[0])
            print("Removed.")

        elif command == "/reference" and len(args) == 1:
            session.slots.set_reference(None if args[0] == "clear" else args[0])
            print("Reference cleared." if args[0] == "clear" else "Reference set.")

        elif command == "/prompt":
            session.prompt = " ".join(args)

        elif command == "/preset" and not args:
            print_presets()

        elif command == "/preset" and len(args) == 2:
            session.select_preset(args[0], args[1])
            print(f"{args[0]} preset set to {args[1]}.")

        elif command == "/tier" and len(args) == 1:
            session.set_tier(args[0].lower())
            print(f"Tier: {session.tier.value}")

        elif command == "/ratio" and len(args) == 1:
            session.set_aspect_ratio(args[0])

        elif command == "/size" and len(args) == 1:
            session.set_image_size(args[0].upper())

        elif command == "/count" and len(args) == 1:
            count = int(args[0])
            if count not in ALLOWED_BATCH_COUNTS:
                print(f"Batch count must be one of {ALLOWED_BATCH_COUNTS}.")
            else:
                session.set_batch_count(count)

        elif command == "/optimize":
            print("Optimizing prompt...")
            print(f"\n{session.optimize_prompt()}\n")

        elif command == "/generate":
            run_generation(session, session.generate())

        elif command == "/history":
            print_history(session)

        elif command == "/retry" and len(args) == 1:
            run_generation(session, session.quick_retry(args[0]))

        elif command == "/refine" and len(args) == 1:
            session.refine_from(args[0])
            print("Image set as refine base. Change the prompt or settings and generate again.")

        elif command == "/export" and len(args) in (1, 2):
            path = session.export(args[0], args[1] if len(args) == 2 else None)
            print(f"Saved {path}")

        elif command == "/wipe":
            session.wipe_history()
            print("History cleared.")

        elif command == "/status":
            print_status(session)

        else:
            print(HELP_TEXT)

    except KeyError as e:
        print(f"No history entry {e}.")
    except (ValueError, IndexError) as e:
        print(str(e))

    return True


# =========================================================
# MAIN
# =========================================================

def main():
    """
    Run the interactive loop over a fresh session.

    Error handling strategy:
    - EOF/interrupt end the session without stack traces.
    """
    logging.basicConfig(level=os.getenv("LOG_LEVEL", "WARNING").upper())

    credentials = EnvCredentialSelector(prompt=lambda: getpass.getpass("Gemini API key: "))
    session = StudioSession(credentials=credentials)

    print("AdStudio started. (Type '/help' for commands, 'exit' to quit)\n")
    print("-" * 60)

    while True:

        try:
            line = input("> ").strip()

        except EOFError:
            print("\nSession closed (EOF received).")
            break

        except KeyboardInterrupt:
            print("\nOperation cancelled by user.")
            break

        if not line:
            continue

        if not handle_command(session, line):
            print("Shutting down.")
            break

        print("-" * 60)


if __name__ == "__main__":
    main()
