"""
Cancelable one-shot timers used to settle a spin.

``SocketIOTimer`` runs the callback from a Socket.IO background task so it
works with whatever async mode the server picked. ``ManualTimer`` never
touches the clock; tests move time forward with ``advance``.
"""
import logging
import threading


class TimerHandle:
    def __init__(self):
        self._cancelled = threading.Event()

    def cancel(self):
        self._cancelled.set()

    @property
    def cancelled(self):
        return self._cancelled.is_set()


class SocketIOTimer:
    def __init__(self, socketio):
        self._socketio = socketio

    def schedule(self, delay_seconds, callback):
        handle = TimerHandle()

        def run():
            self._socketio.sleep(delay_seconds)
            if handle.cancelled:
                logging.info("⏹️ Scheduled settle cancelled")
                return
            callback()

        logging.debug(f"⏰ Starting SocketIO background task for {delay_seconds}s")
        self._socketio.start_background_task(run)
        return handle


class ManualTimer:
    """Timer driven by explicit ``advance`` calls"""

    def __init__(self):
        self.now = 0.0
        self._pending = []

    def schedule(self, delay_seconds, callback):
        handle = TimerHandle()
        self._pending.append((self.now + delay_seconds, handle, callback))
        return handle

    @property
    def pending(self):
        return sum(1 for _, handle, _ in self._pending if not handle.cancelled)

    def advance(self, seconds):
        self.now += seconds
        due = [entry for entry in self._pending if entry[0] <= self.now]
        self._pending = [entry for entry in self._pending if entry[0] > self.now]
        for _, handle, callback in sorted(due, key=lambda entry: entry[0]):
            if not handle.cancelled:
                callback()
