import pytest

from recognition.classifier import OnlineClassifier
from recognition.errors import DetectorUnavailableError
from recognition.geometry import normalize
from tutor.scheduler import DetectionScheduler, LatestCell
from tutor.session import SessionStateMachine

FRAME = object()


@pytest.fixture
def session():
    machine = SessionStateMachine()
    machine.set_target_letter('B')
    return machine


@pytest.fixture
def hand(make_hand):
    return make_hand(5, wrapped=True)


@pytest.fixture
def trained(hand):
    classifier = OnlineClassifier()
    classifier.add_example(normalize(hand), 'B')
    return classifier


def test_latest_cell_overwrites():
    cell = LatestCell()
    assert cell.get() is None
    cell.set(1)
    cell.set(2)
    assert cell.get() == 2


def test_every_other_frame_is_processed(fake_detector, trained, session, hand):
    detector = fake_detector(hand)
    scheduler = DetectionScheduler(detector, trained, session)

    results = [scheduler.tick(FRAME) for _ in range(6)]
    assert detector.calls == 3
    assert [r is not None for r in results] == [False, True] * 3
    assert scheduler.tick_count == 6


def test_skips_unready_detector_and_missing_frames(fake_detector, trained, session, hand):
    detector = fake_detector(hand, ready=False)
    scheduler = DetectionScheduler(detector, trained, session)

    scheduler.tick(FRAME)
    scheduler.tick(FRAME)
    detector.is_ready = True
    scheduler.tick(None)
    assert scheduler.tick_count == 0
    assert detector.calls == 0

    scheduler.tick(FRAME)
    scheduler.tick(FRAME)
    assert detector.calls == 1


def test_practice_forwards_prediction(fake_detector, trained, session, hand):
    scheduler = DetectionScheduler(fake_detector(hand), trained, session)
    scheduler.tick(FRAME)
    result = scheduler.tick(FRAME)

    assert result.label == 'B'
    assert result.confidence == 1.0
    assert session.state.current_prediction == 'B'
    assert session.state.is_correct is True
    assert scheduler.latest.get() is hand


def test_training_mode_stores_sample_without_classifying(fake_detector, trained, session, hand):
    seen = []
    scheduler = DetectionScheduler(fake_detector(hand), trained, session, on_sample=seen.append)
    scheduler.training = True

    scheduler.tick(FRAME)
    assert scheduler.tick(FRAME) is None
    assert scheduler.latest.get() is hand
    assert seen == [hand]
    assert session.state.current_prediction is None


def test_no_hand_clears_latest(fake_detector, trained, session, hand):
    detector = fake_detector(hand)
    scheduler = DetectionScheduler(detector, trained, session)
    scheduler.tick(FRAME)
    scheduler.tick(FRAME)

    detector.sample = None
    scheduler.tick(FRAME)
    assert scheduler.tick(FRAME) is None
    assert scheduler.latest.get() is None


def test_low_confidence_is_gated(fake_detector, session, hand):
    classifier = OnlineClassifier(k=2)
    classifier.add_example(normalize(hand), 'A')
    classifier.add_example(normalize(hand), 'B')
    forwarded = []
    scheduler = DetectionScheduler(fake_detector(hand), classifier, session, on_result=forwarded.append)

    scheduler.tick(FRAME)
    assert scheduler.tick(FRAME) is None  # 0.5 vote share is not above the gate
    assert forwarded == []
    assert session.state.current_prediction is None


def test_empty_classifier_forwards_nothing(fake_detector, session, hand):
    scheduler = DetectionScheduler(fake_detector(hand), OnlineClassifier(), session)
    scheduler.tick(FRAME)
    assert scheduler.tick(FRAME) is None
    assert scheduler.latest.get() is hand


def test_detector_errors_do_not_stop_the_loop(fake_detector, trained, session, hand):
    detector = fake_detector(DetectorUnavailableError("camera gone"))
    scheduler = DetectionScheduler(detector, trained, session)

    scheduler.tick(FRAME)
    assert scheduler.tick(FRAME) is None

    detector.sample = hand
    scheduler.tick(FRAME)
    assert scheduler.tick(FRAME).label == 'B'


def test_invalid_sample_is_skipped(fake_detector, trained, session, make_hand):
    bad = make_hand(1)[:20]
    scheduler = DetectionScheduler(fake_detector(bad), trained, session)
    scheduler.tick(FRAME)
    assert scheduler.tick(FRAME) is None
    assert session.state.current_prediction is None


def test_stop_prevents_further_ticks(fake_detector, trained, session, hand):
    detector = fake_detector(hand)
    scheduler = DetectionScheduler(detector, trained, session)
    scheduler.stop()

    for _ in range(4):
        assert scheduler.tick(FRAME) is None
    assert detector.calls == 0
    assert scheduler.is_stopped


def test_in_flight_result_discarded_after_stop(fake_detector, trained, session, hand):
    detector = fake_detector(hand)
    scheduler = DetectionScheduler(detector, trained, session)
    detector.on_detect = scheduler.stop

    scheduler.tick(FRAME)
    assert scheduler.tick(FRAME) is None
    assert detector.calls == 1
    assert scheduler.latest.get() is None
    assert session.state.current_prediction is None


def test_overlapping_tick_is_skipped(fake_detector, trained, session, hand):
    detector = fake_detector(hand)
    scheduler = DetectionScheduler(detector, trained, session)
    nested = []
    detector.on_detect = lambda: nested.append(scheduler.tick(FRAME))

    scheduler.tick(FRAME)
    scheduler.tick(FRAME)
    assert nested == [None]
    assert detector.calls == 1
    assert scheduler.tick_count == 2


def test_run_until_stopped(fake_detector, trained, session, hand):
    detector = fake_detector(hand)
    scheduler = DetectionScheduler(detector, trained, session)

    def frames():
        for i in range(100):
            if i == 8:
                scheduler.stop()
            yield FRAME

    scheduler.run(frames())
    assert scheduler.tick_count == 8
    assert detector.calls == 4
