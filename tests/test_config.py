from coach.config import Settings

def test_Settings():
    s = Settings()
    assert s.POSTURE_ALERT_MS == 5000
    assert s.EMOTION_ALERT_MS == 3000
    assert s.SLOUCH_THRESHOLD == -0.25
    # override via env-like behavior (construct new instance)
    s2 = Settings(POSTURE_ALERT_MS=1200)
    assert s2.POSTURE_ALERT_MS == 1200

def test_negative_emotions_normalized():
    s = Settings(NEGATIVE_EMOTIONS=[" Sad", "ANGRY ", ""])
    assert s.NEGATIVE_EMOTIONS == ["sad", "angry"]

def test_alert_messages_carry_tip_prefix():
    s = Settings()
    assert s.POSTURE_ALERT_MESSAGE == "💡 Coaching Tip: Try to maintain an upright posture."
    assert s.EMOTION_ALERT_MESSAGE == "💡 Coaching Tip: Remember to convey confidence and positivity!"
