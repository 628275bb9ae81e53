# config.py
import json
import os

APP_NAME = "image-renamer"
DEFAULT_CONFIG_FILENAME = "config.json"
REVERT_MAPPINGS_FILENAME = "revert-mappings.json"

DEFAULT_PROMPTS = {
    "image_naming": "Return a filename that describes this image, including the extension and optionally the date information from the original name: '{original_filename}' in the format of YYYY-MM-DD at the beginning of the filename.\n\n{date_instructions}The words in the filename should be capitalized.\n\nThe filename should use dashes to separate words and should not include any special characters.\n\nThe filename should be no more than 64 characters long, not including the date information.\n\nOnly output the filename.",
    "date_instructions": "If the original filename doesn't contain date information, use this date instead: {date}\n\n"
}
DEFAULT_CONFIG_DATA = {
  "models": {"vision_model": "llava:latest"},
  "ollama_host": "http://localhost:11434",
  "generation_parameters": {"temperature": 0.4, "num_predict": 300},
  "prompts": DEFAULT_PROMPTS
}

def _default_config():
    return json.loads(json.dumps(DEFAULT_CONFIG_DATA))

def data_dir(app_name=APP_NAME):
    """Returns the per-user data directory for the tool, creating it if needed."""
    base = os.environ.get("XDG_DATA_HOME") or os.path.join(os.path.expanduser("~"), ".local", "share")
    path = os.path.join(base, app_name)
    os.makedirs(path, exist_ok=True)
    return path

def revert_mappings_path():
    return os.path.join(data_dir(), REVERT_MAPPINGS_FILENAME)

def config_path():
    return os.path.join(data_dir(), DEFAULT_CONFIG_FILENAME)

def load_config(filename=DEFAULT_CONFIG_FILENAME):
    """Loads configuration from a JSON file, using defaults for missing keys."""
    if os.path.exists(filename):
        try:
            with open(filename, 'r') as f:
                config = json.load(f)
            if not isinstance(config, dict):
                raise ValueError("top-level value is not an object")
            defaults = _default_config()
            for key, value in defaults.items():
                config.setdefault(key, value)
                # Nested sections are filled key by key
                if isinstance(value, dict) and isinstance(config[key], dict):
                    for sub_key, sub_value in value.items():
                        config[key].setdefault(sub_key, sub_value)
        except (json.JSONDecodeError, OSError, ValueError) as e:
            print(f"Error loading {filename}: {e}. Using default config.")
            config = _default_config()
    else:
        print(f"Config file {filename} not found. Creating with default values.")
        config = _default_config()
        save_config(config, filename)
    return config

def save_config(config, filename=DEFAULT_CONFIG_FILENAME):
    """Saves the configuration to a JSON file."""
    try:
        with open(filename, 'w') as f:
            json.dump(config, f, indent=2)
    except OSError as e:
        print(f"Error saving config to {filename}: {e}")
