"""
Sign Language Tutor - teach and practice hand-sign letters with a webcam.

Entry point for the application.
"""
import argparse
import logging
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent / "src"))

MODES = ["training", "practice", "quiz", "alphabet-run"]
KEY_ESC = 27


def parse_args(argv=None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Sign Language Tutor - webcam hand-sign trainer",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Window keys:\n"
            "  a-z   capture sample (training) / choose target letter (practice)\n"
            "  1     toggle training / practice\n"
            "  2     next letter (quiz, alphabet-run)\n"
            "  3     export model\n"
            "  4     import the newest export from the export directory\n"
            "  -     clear the last captured letter\n"
            "  9     delete all training data (press twice to confirm)\n"
            "  0     reset session\n"
            "  ESC   quit"
        ),
    )

    parser.add_argument(
        "--mode",
        choices=MODES,
        default="training",
        help="Starting mode (default: training)",
    )

    parser.add_argument(
        "--letter",
        default=None,
        help="Starting target letter",
    )

    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to config file (default: config.yaml)",
    )

    parser.add_argument(
        "--headless",
        action="store_true",
        help="Run the detection worker without a window and log predictions",
    )

    parser.add_argument(
        "--export",
        type=Path,
        nargs="?",
        const=Path("."),
        default=None,
        metavar="DIR",
        help="Export the saved model to DIR and exit",
    )

    parser.add_argument(
        "--import",
        dest="import_file",
        type=Path,
        default=None,
        metavar="FILE",
        help="Import a model file (replaces the saved model) and exit",
    )

    parser.add_argument(
        "--clear-stored",
        action="store_true",
        help="Delete the saved model and exit",
    )

    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging and the skeleton overlay",
    )

    return parser.parse_args(argv)


def apply_mode(app, scheduler, mode):
    """Switch between training and the session modes."""
    scheduler.training = mode == "training"
    if mode != "training":
        app.set_mode(mode)
        if mode == "alphabet-run":
            app.reset_session()
            app.set_target_letter("A")
        elif mode == "quiz":
            app.next_letter()


@dataclass
class KeyState:
    """Window key state kept between presses."""
    last_letter: Optional[str] = None
    confirm_reset: bool = False


def handle_key(app, scheduler, key, config, keys):
    """
    Apply one window key press.

    Returns:
        False when the user asked to quit.
    """
    from recognition import TutorError

    if key == KEY_ESC:
        return False

    ch = chr(key) if 0 <= key < 256 else ""
    confirm_reset, keys.confirm_reset = keys.confirm_reset, False
    try:
        if ch.isalpha() and ch.isascii():
            letter = ch.upper()
            if scheduler.training:
                if app.capture_latest(letter):
                    print(f"Captured {letter} ({app.get_sample_count(letter)} samples)")
                    app.save()
                    keys.last_letter = letter
            else:
                app.set_target_letter(letter)
        elif ch == "1":
            if scheduler.training:
                allowed, message = app.can_start_practice()
                if message:
                    print(message)
                if allowed:
                    apply_mode(app, scheduler, "practice")
            else:
                apply_mode(app, scheduler, "training")
            print(f"Mode: {'training' if scheduler.training else app.state.mode.value}")
        elif ch == "2":
            app.next_letter()
        elif ch == "3":
            path = app.export_to_file(Path(config.storage.export_dir))
            print(f"Classifier exported to {path}")
        elif ch == "0":
            app.reset_session()
        elif ch == "4":
            imported = app.import_latest_export()
            if imported is None:
                print(f"No exported classifier in {config.storage.export_dir}")
            else:
                path, total = imported
                print(f"Classifier imported from {path} ({total} samples)")
        elif ch == "-":
            if keys.last_letter is None:
                print("Capture a letter first")
            else:
                app.clear_class(keys.last_letter)
                app.save()
                print(f"Cleared samples for {keys.last_letter}")
        elif ch == "9":
            if confirm_reset:
                app.reset_all()
                app.save()
                keys.last_letter = None
                print("All training data deleted")
            else:
                keys.confirm_reset = True
                print("Press 9 again to delete all training data")
    except (TutorError, OSError) as e:
        print(f"ERROR: {e}")
    return True


def run_window_mode(config, app, start_mode):
    """
    Run the tutor with an OpenCV window showing the camera feed and skeleton.
    """
    import cv2
    from webcam import HandTracker

    tracker = HandTracker(config)
    scheduler = app.create_scheduler(tracker)
    apply_mode(app, scheduler, start_mode)
    keys = KeyState()

    print("Starting webcam...")
    print("Press ESC to quit")
    print("-" * 40)

    if not tracker.start():
        print("ERROR: Could not open camera")
        return 1

    try:
        while not scheduler.is_stopped:
            frame = tracker.read_frame()
            scheduler.tick(frame)

            state = app.state
            sample = scheduler.latest.get()
            annotated = tracker.get_frame_with_landmarks(
                sample,
                confidence=state.current_confidence,
                training=scheduler.training,
            )

            if annotated is not None:
                if scheduler.training:
                    lines = [
                        "TRAINING - press a letter to capture",
                        f"Samples: {app.get_total_samples()}  Ready letters: {len(app.ready_letters())}",
                    ]
                else:
                    prediction = state.current_prediction or "-"
                    lines = [
                        f"{state.mode.value.upper()} - target {state.target_letter}",
                        f"Prediction: {prediction} ({state.current_confidence:.2f})",
                        f"Score: {state.correct_count}/{state.total_attempts}",
                    ]
                    if state.feedback_message:
                        lines.append(state.feedback_message)
                if sample is None:
                    lines.append("No hand detected")

                for i, line in enumerate(lines):
                    cv2.putText(
                        annotated, line, (10, 30 + i * 28),
                        cv2.FONT_HERSHEY_SIMPLEX, 0.7, (0, 255, 0), 2
                    )
                cv2.imshow(config.ui.window_name, annotated)

            key = cv2.waitKey(1) & 0xFF
            if key != 0xFF and not handle_key(app, scheduler, key, config, keys):
                break

    finally:
        scheduler.stop()
        tracker.stop()
        cv2.destroyAllWindows()

    return 0


def run_headless_mode(config, app, start_mode):
    """Run the detection worker on a QThread and log its output (no window)."""
    import signal
    import atexit
    from PyQt5.QtCore import QCoreApplication, QThread, Qt
    from webcam import TutorWorker

    qt_app = QCoreApplication(sys.argv)

    thread = QThread()
    worker = TutorWorker(config, app)
    worker.moveToThread(thread)

    def cleanup():
        """Ensure camera is released on exit."""
        print("\nCleaning up camera resources...")
        worker.stop_process()
        thread.quit()
        thread.wait(2000)
        print("Cleanup complete.")

    atexit.register(cleanup)

    def signal_handler(signum, frame):
        """Handle Ctrl+C and kill signals gracefully."""
        print(f"\nReceived signal {signum}, shutting down...")
        qt_app.quit()

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    def handle_prediction(result):
        state = app.state
        mark = "OK" if state.is_correct else "  "
        print(f"[{mark}] target={state.target_letter} prediction={result.label} ({result.confidence:.2f}) "
              f"score={state.correct_count}/{state.total_attempts}")

    # Connect signals (Use QueuedConnection so handlers run in the main thread)
    thread.started.connect(worker.start_process)
    worker.prediction_ready.connect(handle_prediction, Qt.QueuedConnection)
    worker.hand_lost.connect(lambda: print("Hand lost"), Qt.QueuedConnection)
    worker.error.connect(lambda msg: print(f"WORKER ERROR: {msg}"), Qt.QueuedConnection)
    worker.error.connect(lambda msg: qt_app.quit(), Qt.QueuedConnection)

    if start_mode != "training":
        app.set_mode(start_mode)
        if start_mode == "quiz":
            app.next_letter()

    worker.set_training(start_mode == "training")
    thread.start()

    try:
        result = qt_app.exec_()
    finally:
        cleanup()
        atexit.unregister(cleanup)  # Avoid double cleanup

    return result


def main(argv=None):
    """Main entry point."""
    args = parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    from tutor import load_config, TutorApp
    from recognition import TutorError

    config = load_config(args.config)
    if args.debug:
        config.ui.debug_overlay = True

    app = TutorApp(config)

    try:
        if args.clear_stored:
            app.clear_stored()
            print("Saved classifier removed")
            return 0

        if args.import_file:
            total = app.import_from_file(args.import_file.read_bytes())
            print(f"Classifier imported successfully ({total} samples)")
            return 0

        if config.storage.autoload or args.export:
            total = app.load_saved()
            if total:
                print(f"Loaded classifier with {total} samples")

        if args.export:
            path = app.export_to_file(args.export)
            print(f"Classifier exported to {path}")
            return 0

        if args.letter:
            app.set_target_letter(args.letter.upper())

    except (TutorError, OSError) as e:
        print(f"ERROR: {e}")
        return 1

    print("Sign Language Tutor starting...")
    print(f"  Mode: {args.mode}")
    print(f"  Samples: {app.get_total_samples()}")
    print(f"  Debug: {args.debug}")
    print()

    if args.mode != "training" and app.get_total_samples() == 0:
        print("WARNING: no training samples yet, predictions will stay empty")

    if args.headless:
        return run_headless_mode(config, app, args.mode)
    return run_window_mode(config, app, args.mode)


if __name__ == "__main__":
    sys.exit(main())
