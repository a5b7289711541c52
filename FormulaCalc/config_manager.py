# config_manager.py
import json
from pathlib import Path

config_json = Path(__file__).resolve().parent.parent / "config.json"
ui_strings = Path(__file__).resolve().parent.parent / "ui_strings.json"


DEFAULT_SETTINGS = {
    "darkmode": False,
    "decimal_places": 4,
    "fractions": False,
    "copy_on_click": True,
    "debug": False
}


def load_setting_value(key_value):
    """Return one setting, or the full settings dict for key_value "all".

    Missing keys and a missing / corrupt config.json fall back to DEFAULT_SETTINGS.
    """
    settings_dict = dict(DEFAULT_SETTINGS)
    try:
        with open(config_json, 'r', encoding='utf-8') as f:
            settings_dict.update(json.load(f))

    except (FileNotFoundError, json.JSONDecodeError):
        pass

    if key_value == "all":
        return settings_dict

    else:
        return settings_dict.get(key_value, 0)


def load_setting_description(key_value):
    try:
        with open(ui_strings, 'r', encoding='utf-8') as f:
            settings_dict = json.load(f)

    except (FileNotFoundError, json.JSONDecodeError):
        return {}

    if key_value == "all":
        return settings_dict

    else:
        return settings_dict.get(key_value, key_value)


def save_setting(settings_dict):
    try:
        with open(config_json, 'w', encoding='utf-8') as f:
            json.dump(settings_dict, f, indent=4)
            return settings_dict

    except (OSError, TypeError):
        return {}
