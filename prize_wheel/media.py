"""
User-supplied media: background image, background music and per-tier sounds.

References are opaque strings (data URIs from ``upload_media``) that the
renderer displays or plays as-is.
"""
import base64
import binascii
import logging
from dataclasses import dataclass, field
from typing import Dict, Optional

from .errors import MediaReadFailure
from .inventory import PrizeTier
from .storage import KeyValueStore

BACKGROUND_KEY = 'background'
MUSIC_KEY = 'music'
SOUND_KEY_PREFIX = 'sound:'

ALLOWED_EXTENSIONS = {'mp3', 'wav', 'ogg', 'm4a', 'aac'}
ALLOWED_IMAGE_EXTENSIONS = {'png', 'jpg', 'jpeg', 'gif', 'webp'}

EXTENSION_MIMETYPES = {
    'mp3': 'audio/mpeg',
    'wav': 'audio/wav',
    'ogg': 'audio/ogg',
    'm4a': 'audio/mp4',
    'aac': 'audio/aac',
    'png': 'image/png',
    'jpg': 'image/jpeg',
    'jpeg': 'image/jpeg',
    'gif': 'image/gif',
    'webp': 'image/webp',
}


def sound_key(tier):
    return f"{SOUND_KEY_PREFIX}{PrizeTier(tier).value}"


def allowed_file(filename, allowed_extensions):
    """Check if file has allowed extension"""
    return '.' in filename and \
           filename.rsplit('.', 1)[1].lower() in allowed_extensions


@dataclass
class MediaAssets:
    background: Optional[str] = None
    music: Optional[str] = None
    sound_by_tier: Dict[PrizeTier, Optional[str]] = field(default_factory=dict)

    def to_dict(self):
        return {
            'background': self.background,
            'music': self.music,
            'sound_by_tier': {tier.value: ref for tier, ref in self.sound_by_tier.items()},
        }


class MediaRegistry:
    def __init__(self, store: KeyValueStore):
        self._store = store

    def _put(self, key, reference):
        if reference is None:
            self._store.remove(key)
        else:
            self._store.set(key, reference)

    def set_background(self, reference):
        self._put(BACKGROUND_KEY, reference)

    def get_background(self):
        return self._store.get(BACKGROUND_KEY)

    def set_music(self, reference):
        self._put(MUSIC_KEY, reference)

    def get_music(self):
        return self._store.get(MUSIC_KEY)

    def set_sound(self, tier, reference):
        self._put(sound_key(tier), reference)

    def get_sound(self, tier):
        return self._store.get(sound_key(tier))

    def assets(self):
        return MediaAssets(
            background=self.get_background(),
            music=self.get_music(),
            sound_by_tier={tier: self.get_sound(tier) for tier in PrizeTier},
        )

    def clear_all(self):
        """Remove every stored media reference"""
        self._store.remove(BACKGROUND_KEY)
        self._store.remove(MUSIC_KEY)
        for tier in PrizeTier:
            self._store.remove(sound_key(tier))
        logging.info("🧹 All custom media cleared")


def _resolve_mimetype(slot_is_image, filename, mimetype):
    category = 'image/' if slot_is_image else 'audio/'
    if mimetype and mimetype.startswith(category):
        return mimetype

    allowed = ALLOWED_IMAGE_EXTENSIONS if slot_is_image else ALLOWED_EXTENSIONS
    if filename and allowed_file(filename, allowed):
        return EXTENSION_MIMETYPES[filename.rsplit('.', 1)[1].lower()]

    raise MediaReadFailure(
        f"Invalid file type. Allowed: {', '.join(sorted(allowed))}"
    )


def upload_media(registry, slot, file_bytes, filename=None, mimetype=None):
    """
    Read an uploaded file into a data URI and store it in ``slot``.

    ``slot`` is ``'background'``, ``'music'`` or a prize tier id. The registry
    is left untouched when the upload is rejected.
    """
    if slot == BACKGROUND_KEY:
        setter = registry.set_background
        slot_is_image = True
    elif slot == MUSIC_KEY:
        setter = registry.set_music
        slot_is_image = False
    else:
        try:
            tier = PrizeTier(slot)
        except ValueError:
            raise MediaReadFailure(f"Unknown media slot: {slot}") from None
        slot_is_image = False

        def setter(reference):
            registry.set_sound(tier, reference)

    if not file_bytes:
        raise MediaReadFailure("Uploaded file is empty")

    resolved = _resolve_mimetype(slot_is_image, filename, mimetype)
    try:
        encoded = base64.b64encode(bytes(file_bytes)).decode('ascii')
    except (TypeError, binascii.Error) as e:
        raise MediaReadFailure(f"Could not read uploaded file: {e}") from e

    reference = f"data:{resolved};base64,{encoded}"
    setter(reference)
    logging.info(f"🎵 Media stored for slot '{slot}' ({len(file_bytes)} bytes, {resolved})")
    return reference
