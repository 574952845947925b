"""
Runtime configuration for the wheel.

Settings live in ``config.json`` inside the data folder and are merged over
``DEFAULT_CONFIG``. Updates only touch whitelisted keys and are clamped to
sane ranges before saving.
"""
import copy
import json
import logging
import os

DATA_FOLDER = os.environ.get('PRIZE_WHEEL_DATA', 'data')
HOST = os.environ.get('PRIZE_WHEEL_HOST', '0.0.0.0')
PORT = int(os.environ.get('PRIZE_WHEEL_PORT', '5000'))
SECRET_KEY = os.environ.get('PRIZE_WHEEL_SECRET_KEY', 'prize-wheel-lucky-draw!')
MAX_CONTENT_LENGTH = 16 * 1024 * 1024  # 16MB max file size

CONFIG_FILENAME = 'config.json'
STATE_FILENAME = 'state.json'

DEFAULT_CONFIG = {
    'spin_duration_ms': 4000,
    'full_spins': 6,
    'pointer_angle': 270,
    'volume': 75,
    'confetti': {
        'particle_count': 200,
        'spread': 90,
        'colors': ['#facc15', '#ea580c', '#b91c1c'],
    },
}

ALLOWED_KEYS = ['spin_duration_ms', 'full_spins', 'pointer_angle', 'volume', 'confetti']


def _clamp(value, low, high):
    return max(low, min(high, int(value)))


def apply_config_update(config, data):
    """Return a copy of ``config`` with the allowed keys of ``data`` applied and clamped"""
    updated = copy.deepcopy(config)
    for key in ALLOWED_KEYS:
        if key in data:
            updated[key] = data[key]

    updated['spin_duration_ms'] = _clamp(updated['spin_duration_ms'], 500, 20000)
    updated['full_spins'] = _clamp(updated['full_spins'], 1, 20)
    updated['pointer_angle'] = float(updated['pointer_angle']) % 360
    updated['volume'] = _clamp(updated['volume'], 0, 100)

    confetti = dict(DEFAULT_CONFIG['confetti'])
    if isinstance(updated.get('confetti'), dict):
        confetti.update(updated['confetti'])
    confetti['particle_count'] = _clamp(confetti['particle_count'], 0, 1000)
    confetti['spread'] = _clamp(confetti['spread'], 0, 360)
    updated['confetti'] = confetti
    return updated


def load_config(filename):
    """Load configuration merged over the defaults, recovering from a corrupt file"""
    config = copy.deepcopy(DEFAULT_CONFIG)
    if not os.path.exists(filename):
        return config
    try:
        with open(filename, 'r', encoding='utf-8') as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError("config must be a JSON object")
        return apply_config_update(config, data)
    except (ValueError, TypeError) as e:
        logging.error(f"🚨 Config '{filename}' invalid ({e}). Using defaults.")
        return config


def save_config(filename, config):
    """Save configuration atomically"""
    temp_filename = f"{filename}.tmp"
    with open(temp_filename, 'w', encoding='utf-8') as f:
        json.dump(config, f, indent=2, ensure_ascii=False)
    os.replace(temp_filename, filename)
    logging.debug(f"💾 Config saved: {filename}")
