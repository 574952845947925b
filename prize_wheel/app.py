import base64
import logging
import os
import random
import threading
import time
from datetime import datetime
from io import BytesIO

import qrcode
from flask import Flask, jsonify, render_template, request
from flask_socketio import SocketIO
from werkzeug.utils import secure_filename

from . import config as settings
from .errors import EmptyInventory, MediaReadFailure
from .inventory import InventoryStore
from .media import MediaRegistry, upload_media
from .selector import odds
from .spin import SpinMachine
from .storage import JsonFileStore
from .timers import SocketIOTimer


def configure_logging(level=logging.INFO, log_file='prize_wheel.log'):
    """Log to a file and the console with one shared format"""
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(levelname)s - [%(name)s] - %(message)s',
        handlers=[
            logging.FileHandler(log_file),
            logging.StreamHandler()
        ]
    )


class DisplayState:
    """
    Per-process display state shared by every connected screen: who is
    connected and whether background music should be playing.
    """
    def __init__(self):
        self.connected_clients = set()
        self.music_playing = False
        self._lock = threading.Lock()
        self.performance_metrics = {
            'start_time': time.time(),
            'total_connections': 0,
            'peak_concurrent': 0
        }

    def add_client(self, client_id):
        """Add connected client and update metrics"""
        with self._lock:
            self.connected_clients.add(client_id)
            self.performance_metrics['total_connections'] += 1
            self.performance_metrics['peak_concurrent'] = max(
                len(self.connected_clients),
                self.performance_metrics['peak_concurrent']
            )

    def remove_client(self, client_id):
        with self._lock:
            self.connected_clients.discard(client_id)

    def toggle_music(self, has_music):
        """Flip playback; without a music track the player stays stopped"""
        with self._lock:
            self.music_playing = (not self.music_playing) if has_music else False
            return self.music_playing

    def stop_music(self):
        with self._lock:
            self.music_playing = False


def create_app(data_folder=None, store=None, timer=None, rng=None):
    """
    Build the Flask app and its Socket.IO server around one draw engine.

    ``store`` defaults to a JSON file in ``data_folder``; ``timer`` defaults
    to Socket.IO background tasks. Returns ``(app, socketio)``.
    """
    data_folder = data_folder or settings.DATA_FOLDER
    os.makedirs(data_folder, exist_ok=True)

    app = Flask(__name__, template_folder='templates')
    app.config.update(
        SECRET_KEY=settings.SECRET_KEY,
        MAX_CONTENT_LENGTH=settings.MAX_CONTENT_LENGTH,
        DATA_FOLDER=data_folder,
    )
    socketio = SocketIO(app, cors_allowed_origins="*", async_mode='threading',
                        ping_timeout=60, ping_interval=25)

    config_path = os.path.join(data_folder, settings.CONFIG_FILENAME)
    if store is None:
        store = JsonFileStore(os.path.join(data_folder, settings.STATE_FILENAME))

    inventory = InventoryStore(store)
    media = MediaRegistry(store)
    machine = SpinMachine(
        inventory,
        media,
        timer or SocketIOTimer(socketio),
        emit=socketio.emit,
        rng=rng or random.Random(),
        config=settings.load_config(config_path),
    )
    display = DisplayState()
    app.extensions['prize_wheel'] = {
        'machine': machine,
        'media': media,
        'display': display,
    }

    def get_state():
        state = machine.snapshot()
        state['music_playing'] = display.music_playing
        state['connected_clients'] = len(display.connected_clients)
        return state

    def trigger_spin_flow(source='unknown'):
        """
        Run a draw request from any source and describe the outcome.

        Returns ``(body, status)`` ready for ``jsonify``. Busy and empty
        outcomes leave the engine untouched.
        """
        logging.info(f"🎲 Draw request from: {source}")
        try:
            spinning = machine.draw()
        except EmptyInventory as e:
            socketio.emit('spin_error', {
                'message': str(e),
                'error_type': 'empty_inventory'
            })
            return {
                'success': False,
                'error': 'empty_inventory',
                'message': str(e),
            }, 400

        if spinning is None:
            return {
                'success': False,
                'error': 'wheel_busy',
                'message': 'Wheel is currently spinning. Please wait for it to complete.',
                'is_spinning': True,
                'timestamp': datetime.now().isoformat()
            }, 409

        return {
            'success': True,
            'winner_id': spinning.winner.id.value,
            'rotation': spinning.target_rotation,
            'spin_duration': machine.config['spin_duration_ms'],
            'spin_number': machine.total_spins_session,
            'timestamp': datetime.now().isoformat()
        }, 200

    def confirmed(data):
        return bool(data) and data.get('confirm') is True

    def restore_defaults():
        machine.reset()
        media.clear_all()
        display.stop_music()
        socketio.emit('media_updated', media.assets().to_dict())
        socketio.emit('music_state', {'music_playing': False})

    # ==========================================================================
    # ROUTE HANDLERS
    # ==========================================================================

    @app.route('/')
    def display_page():
        try:
            return render_template('display.html',
                                   state=get_state(),
                                   volume=machine.config.get('volume', 75))
        except Exception as e:
            logging.error(f"💥 Display page error: {e}")
            return f"Error loading display: {e}", 500

    @app.route('/api/state')
    def get_state_api():
        return jsonify(get_state())

    @app.route('/api/prizes')
    def get_prizes():
        return jsonify({'prizes': [p.to_dict() for p in machine.prizes]})

    @app.route('/api/odds')
    def get_odds():
        """Current probability of every tier, driven by remaining stock"""
        try:
            probabilities = odds(machine.prizes)
            return jsonify({
                'total_remaining': sum(p.remaining for p in machine.prizes),
                'prizes': [
                    {
                        'id': p.id.value,
                        'name': p.name,
                        'remaining': p.remaining,
                        'probability': probabilities[p.id] * 100,
                    }
                    for p in machine.prizes
                ]
            })
        except Exception as e:
            logging.error(f"💥 Odds error: {e}")
            return jsonify({'error': str(e)}), 500

    @app.route('/api/draw', methods=['POST'])
    def trigger_draw_api():
        try:
            data = request.get_json(silent=True) or {}
            body, status = trigger_spin_flow(source=f"api_{data.get('source', 'rest')}")
            return jsonify(body), status
        except Exception as e:
            logging.error(f"💥 API draw error: {e}")
            return jsonify({
                'success': False,
                'error': 'server_error',
                'message': str(e),
            }), 500

    @app.route('/api/reset', methods=['POST'])
    def reset_inventory():
        if not confirmed(request.get_json(silent=True)):
            return jsonify({'error': 'confirmation_required',
                            'message': 'Resetting clears all draw progress; send {"confirm": true}'}), 400
        try:
            machine.reset()
            return jsonify({'message': 'Inventory reset', 'state': get_state()})
        except Exception as e:
            logging.error(f"💥 Reset error: {e}")
            return jsonify({'error': str(e)}), 500

    @app.route('/api/restore_defaults', methods=['POST'])
    def restore_defaults_api():
        if not confirmed(request.get_json(silent=True)):
            return jsonify({'error': 'confirmation_required',
                            'message': 'Restoring defaults removes custom media; send {"confirm": true}'}), 400
        try:
            restore_defaults()
            return jsonify({'message': 'Defaults restored', 'state': get_state()})
        except Exception as e:
            logging.error(f"💥 Restore defaults error: {e}")
            return jsonify({'error': str(e)}), 500

    @app.route('/api/media')
    def get_media():
        return jsonify(media.assets().to_dict())

    @app.route('/api/upload/<slot>', methods=['POST'])
    def upload_media_api(slot):
        if 'file' not in request.files:
            return jsonify({'error': 'No file provided'}), 400

        file = request.files['file']
        if file.filename == '':
            return jsonify({'error': 'No file selected'}), 400

        try:
            filename = secure_filename(file.filename)
            reference = upload_media(media, slot, file.read(),
                                     filename=filename, mimetype=file.mimetype)
        except MediaReadFailure as e:
            logging.warning(f"⚠️ Upload to '{slot}' rejected: {e}")
            return jsonify({'error': 'media_read_failure', 'message': str(e)}), 422
        except Exception as e:
            logging.error(f"💥 Upload error: {e}")
            return jsonify({'error': str(e)}), 500

        socketio.emit('media_updated', {'slot': slot, 'reference': reference})
        return jsonify({'message': 'Media uploaded successfully', 'slot': slot, 'reference': reference})

    @app.route('/api/music/toggle', methods=['POST'])
    def toggle_music_api():
        playing = display.toggle_music(media.get_music() is not None)
        socketio.emit('music_state', {'music_playing': playing})
        return jsonify({'music_playing': playing})

    @app.route('/api/config', methods=['GET'])
    def get_config():
        return jsonify(machine.config)

    @app.route('/api/config', methods=['POST'])
    def save_config_api():
        """Update timing and display settings; applies from the next draw"""
        data = request.get_json(silent=True)
        if not isinstance(data, dict):
            return jsonify({'error': 'Expected a JSON object'}), 400
        try:
            updated = settings.apply_config_update(machine.config, data)
        except (TypeError, ValueError) as e:
            return jsonify({'error': f'Invalid configuration: {e}'}), 400

        try:
            settings.save_config(config_path, updated)
        except OSError as e:
            logging.error(f"💥 Save config error: {e}")
            return jsonify({'error': 'Failed to save configuration'}), 500

        machine.config = updated
        logging.info(f"⚙️ Configuration updated: duration={updated['spin_duration_ms']}ms "
                     f"full_spins={updated['full_spins']}")
        return jsonify({'message': 'Configuration saved successfully', 'config': updated})

    @app.route('/api/qr_code')
    def generate_qr_code():
        """QR code that opens the display page on another device"""
        try:
            url = request.host_url
            qr = qrcode.QRCode(version=1, box_size=10, border=5)
            qr.add_data(url)
            qr.make(fit=True)
            img = qr.make_image(fill_color="black", back_color="white")

            buffer = BytesIO()
            img.save(buffer, format='PNG')
            img_str = base64.b64encode(buffer.getvalue()).decode()
            return jsonify({
                'qr_code': f"data:image/png;base64,{img_str}",
                'url': url
            })
        except Exception as e:
            logging.error(f"💥 QR Code generation failed: {e}")
            return jsonify({'error': 'Failed to generate QR code'}), 500

    # ==========================================================================
    # SOCKET.IO EVENT HANDLERS
    # ==========================================================================

    @socketio.on('connect')
    def handle_connect():
        display.add_client(request.sid)
        logging.info(f"🔌 Client connected: {request.sid} (Total: {len(display.connected_clients)})")
        socketio.emit('state_update', get_state(), to=request.sid)
        socketio.emit('connection_confirmed', {
            'client_id': request.sid,
            'server_time': datetime.now().isoformat(),
            'total_clients': len(display.connected_clients),
        }, to=request.sid)

    @socketio.on('disconnect')
    def handle_disconnect(*args):
        display.remove_client(request.sid)
        logging.info(f"🔌 Client disconnected: {request.sid} (Remaining: {len(display.connected_clients)})")

    @socketio.on('draw')
    def handle_draw(data=None):
        try:
            trigger_spin_flow(source='web_interface')
        except Exception as e:
            logging.error(f"💥 Web draw request error: {e}")
            socketio.emit('spin_error', {'message': f'Draw request failed: {e}',
                                         'error_type': 'server_error'})

    @socketio.on('reset')
    def handle_reset(data=None):
        if not confirmed(data):
            socketio.emit('spin_error', {'message': 'Reset needs confirmation',
                                         'error_type': 'confirmation_required'}, to=request.sid)
            return
        machine.reset()

    @socketio.on('restore_defaults')
    def handle_restore_defaults(data=None):
        if not confirmed(data):
            socketio.emit('spin_error', {'message': 'Restore defaults needs confirmation',
                                         'error_type': 'confirmation_required'}, to=request.sid)
            return
        restore_defaults()

    @socketio.on('toggle_music')
    def handle_toggle_music(data=None):
        playing = display.toggle_music(media.get_music() is not None)
        socketio.emit('music_state', {'music_playing': playing})

    @socketio.on('request_state_update')
    def handle_state_request(data=None):
        socketio.emit('state_update', get_state(), to=request.sid)

    # ==========================================================================
    # ERROR HANDLERS
    # ==========================================================================

    @app.errorhandler(500)
    def internal_error(error):
        logging.error(f"💥 Internal server error: {error}")
        return jsonify({'error': 'Internal server error', 'message': str(error)}), 500

    @app.errorhandler(404)
    def not_found(error):
        return jsonify({'error': 'Not found', 'message': 'Endpoint not found'}), 404

    @app.errorhandler(413)
    def file_too_large(error):
        return jsonify({'error': 'File too large', 'message': 'File exceeds 16MB limit'}), 413

    @app.errorhandler(400)
    def bad_request(error):
        return jsonify({'error': 'Bad request', 'message': str(error)}), 400

    return app, socketio


def main():
    configure_logging()
    try:
        app, socketio = create_app()
        logging.info("🎡 PRIZE WHEEL DRAW 🎡")
        logging.info("=" * 60)
        logging.info(f"🌍 Display:      http://{settings.HOST}:{settings.PORT}/")
        logging.info(f"🎲 Remote Draw:  http://{settings.HOST}:{settings.PORT}/api/draw")
        logging.info(f"📡 State:        http://{settings.HOST}:{settings.PORT}/api/state")
        logging.info(f"🎵 Media Upload: http://{settings.HOST}:{settings.PORT}/api/upload/<slot>")
        logging.info("=" * 60)
        socketio.run(app, host=settings.HOST, port=settings.PORT,
                     debug=False, allow_unsafe_werkzeug=True)
    except KeyboardInterrupt:
        logging.info("🛑 Server shutdown requested")


if __name__ == '__main__':
    main()
