# renamer_core.py
import ollama
import os
import base64
import re
import datetime

import exifread
from PIL import Image
from pillow_heif import register_heif_opener

# HEIC/HEIF photos are opened through Pillow like any other image
register_heif_opener()

EXIF_DATE_TAGS = ['EXIF DateTimeOriginal', 'Image DateTimeOriginal']
EXIF_DATE_FORMATS = ['%Y:%m:%d', '%Y-%m-%d']
DATE_PREFIX_RE = re.compile(r'^\d{4}-\d{2}-\d{2}')

def log_message(message, log_callback):
    """Utility to print messages and send them to a callback if available."""
    if log_callback:
        log_callback(message + '\n')
    else:
        print(message)

# --- Discovery ---

def is_image_file(filepath):
    """Returns True if the file content is an image Pillow can identify. The extension is ignored."""
    try:
        with Image.open(filepath) as img:
            return bool(img.format)
    except Exception:
        return False

def discover_files(paths, log_callback=None):
    """Expands files and directories into a flat list of image files, in the order given."""
    found = []
    for path in paths:
        path = os.fspath(path)
        if os.path.isfile(path):
            if is_image_file(path):
                found.append(path)
        elif os.path.isdir(path):
            # Unreadable entries are skipped by os.walk when no onerror is given
            for dirpath, dirnames, filenames in os.walk(path):
                dirnames.sort()
                for filename in sorted(filenames):
                    filepath = os.path.join(dirpath, filename)
                    if os.path.isfile(filepath) and is_image_file(filepath):
                        found.append(filepath)
        else:
            log_message(f"The path {path!r} is not a valid file or directory", log_callback)
    return found

# --- Dates ---

def exif_date(filepath):
    """Returns the EXIF original capture date as YYYY-MM-DD, or None."""
    try:
        with open(filepath, 'rb') as f:
            tags = exifread.process_file(f, details=False)
    except Exception:
        return None
    for tag_name in EXIF_DATE_TAGS:
        tag = tags.get(tag_name)
        if tag is None:
            continue
        value = str(tag).strip()[:10]
        for fmt in EXIF_DATE_FORMATS:
            try:
                return datetime.datetime.strptime(value, fmt).date().isoformat()
            except ValueError:
                continue
    return None

def stat_date(filepath):
    """Returns the file creation date (birth time where available, else ctime) as YYYY-MM-DD."""
    try:
        stat_info = os.stat(filepath)
    except OSError:
        return None
    timestamp = getattr(stat_info, 'st_birthtime', stat_info.st_ctime)
    return datetime.datetime.fromtimestamp(timestamp).strftime('%Y-%m-%d')

def resolve_date(filepath):
    return exif_date(filepath) or stat_date(filepath)

# --- Naming ---

def create_client(host, log_callback=None):
    """Connects to Ollama and returns a client, or None if the server is unreachable."""
    try:
        client = ollama.Client(host=host)
        client.list()
        log_message(f"Connected to Ollama at {host}", log_callback)
        return client
    except Exception as e:
        log_message(f"Error connecting to Ollama at {host}: {e}", log_callback)
        return None

def clean_suggestion(text, filepath):
    """
    Turns a raw model response into a bare filename.
    Takes the first non-empty line, strips quotes and backticks, and appends the
    original extension when the suggestion has none. Returns None for anything
    that is not a plain filename.
    """
    if not text:
        return None
    lines = [line.strip() for line in text.splitlines() if line.strip()]
    if not lines:
        return None
    name = lines[0].strip('`').strip().strip("'").strip('"').strip()
    if not name or name in ('.', '..') or '\x00' in name:
        return None
    if '/' in name or os.sep in name or (os.altsep and os.altsep in name):
        return None
    _, ext = os.path.splitext(name)
    if not ext:
        name += os.path.splitext(filepath)[1]
    return name

def get_suggested_name(client, cfg, filepath, image_bytes, date_hint, log_callback=None):
    """Asks the vision model for a descriptive filename. Returns None when there is no usable answer."""
    original_filename = os.path.basename(filepath)
    vision_model = cfg["models"]["vision_model"]
    if not vision_model:
        log_message("Vision model not set...", log_callback)
        return None

    img_b64 = base64.b64encode(image_bytes).decode('utf-8')
    date_instructions = ""
    if date_hint:
        date_instructions = cfg["prompts"]["date_instructions"].replace('{date}', date_hint)
    prompt = cfg["prompts"]["image_naming"].replace('{original_filename}', original_filename).replace('{date_instructions}', date_instructions)
    ollama_options = {
        "temperature": cfg["generation_parameters"]["temperature"],
        "num_predict": cfg["generation_parameters"]["num_predict"]
    }

    try:
        response = client.generate(model=vision_model, prompt=prompt, images=[img_b64], stream=False, options=ollama_options)
    except ollama.ResponseError as e:
        log_message(f"  Ollama API Error for {original_filename}: {e.error}", log_callback)
        if e.status_code == 404:
            log_message(f"  Please make sure the model is downloaded: `ollama pull {vision_model}`", log_callback)
        return None
    except Exception as e:
        log_message(f"  Error analyzing {original_filename} with Ollama: {e}", log_callback)
        return None

    return clean_suggestion(response['response'], filepath)

def apply_date_prefix(name, date_hint):
    if not date_hint or DATE_PREFIX_RE.match(name):
        return name
    return f"{date_hint}-{name}"

# --- Engines ---

def _save_after_failure(store, log_callback):
    try:
        store.save()
    except Exception as e:
        log_message(f"ERROR: could not record revert mappings: {e}", log_callback)

def rename_files(paths, store, suggest, confirm=None, dry_run=False, log_callback=None):
    """
    Renames every image found under paths to the name returned by suggest.

    suggest(filepath, image_bytes, date_hint) returns a filename or None.
    confirm(question) returns True to go ahead; when None every rename is approved.
    Each rename is recorded in store, which is saved once at the end. Returns the
    number of files renamed.
    """
    candidates = discover_files(paths, log_callback)
    log_message(f"Processing {len(candidates)} images...", log_callback)

    files_renamed = 0
    for filepath in candidates:
        date_hint = resolve_date(filepath)
        try:
            with open(filepath, 'rb') as f:
                image_bytes = f.read()
        except OSError as e:
            log_message(f"Could not read {filepath!r}: {e}, skipping file", log_callback)
            continue

        suggestion = suggest(filepath, image_bytes, date_hint)
        if not suggestion:
            log_message(f"No suggestion returned, skipping file: {filepath!r}", log_callback)
            continue

        new_name = apply_date_prefix(suggestion, date_hint)
        if new_name == os.path.basename(filepath):
            log_message(f"Suggested name is the same as the current one, skipping file: {filepath!r}", log_callback)
            continue

        new_path = os.path.join(os.path.dirname(filepath), new_name)
        if os.path.lexists(new_path):
            log_message(f"Filename already exists, skipping file: {filepath!r}", log_callback)
            continue

        if dry_run:
            log_message(f"DRY RUN: Would rename {filepath!r} to: {new_path!r}", log_callback)
            continue

        if confirm is not None and not confirm(f"Will rename {filepath!r} to: {new_path!r} ok?"):
            log_message(f"Skipped by user: {filepath!r}", log_callback)
            continue

        log_message(f"Renaming {filepath!r} to: {new_path!r}", log_callback)
        try:
            os.rename(filepath, new_path)
        except OSError as e:
            log_message(f"ERROR renaming {filepath!r}: {e}", log_callback)
            _save_after_failure(store, log_callback)
            raise

        store.insert(new_path, filepath)
        files_renamed += 1

    if not dry_run:
        store.save()
    log_message(f"Renamed {files_renamed} of {len(candidates)} images.", log_callback)
    return files_renamed

def revert_files(store, paths=None, confirm=None, dry_run=False, log_callback=None):
    """
    Renames files recorded in store back to their original names.

    With no paths every entry is reverted; otherwise only entries whose renamed
    path matches one of paths. Paths that are not in the store are ignored.
    Returns the number of files reverted.
    """
    if not paths:
        to_revert = store.keys()
    else:
        matched = set()
        for path in paths:
            key = store.find_key(path)
            if key is not None:
                matched.add(key)
        to_revert = sorted(matched)

    files_reverted = 0
    for new_path in to_revert:
        original_path = store.lookup(new_path)
        if not os.path.exists(new_path):
            log_message(f"The file {new_path!r} does not exist anymore! Skipping", log_callback)
            continue
        if os.path.lexists(original_path):
            log_message(f"A file already exists at {original_path!r}, skipping: {new_path!r}", log_callback)
            continue

        if dry_run:
            log_message(f"DRY RUN: Would revert {new_path!r} to: {original_path!r}", log_callback)
            continue

        if confirm is not None and not confirm(f"Will revert {new_path!r} to: {original_path!r} ok?"):
            log_message(f"Skipped by user: {new_path!r}", log_callback)
            continue

        log_message(f"Reverting {new_path!r} to: {original_path!r}", log_callback)
        try:
            os.rename(new_path, original_path)
        except OSError as e:
            log_message(f"ERROR reverting {new_path!r}: {e}", log_callback)
            _save_after_failure(store, log_callback)
            raise

        store.remove(new_path)
        files_reverted += 1

    if not dry_run:
        store.save()
    log_message(f"Reverted {files_reverted} of {len(to_revert)} files.", log_callback)
    return files_reverted
