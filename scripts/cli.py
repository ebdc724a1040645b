"""
CLI to replay recorded keypoint / expression frames -> JSON distributions.

Input JSON is a list of frames:
  {"t": seconds, "poses": [[{name, x, y, score?}, ...]], "expressions": {label: score} | null}
Either key may be omitted. Frames are replayed as one recorded answer on a
manual clock, so coaching alerts fire on the recorded timeline.
"""
from __future__ import annotations
import argparse, json, os

from coach.alerting import ManualClock
from coach.config import Settings
from coach.models import Keypoint
from coach.session import CoachingSession, NotificationLog


def replay(frames: list[dict], settings: Settings, calibrate: bool = False) -> dict:
    clock = ManualClock()
    notes = NotificationLog()
    session = CoachingSession(settings, notify=notes, scheduler=clock)
    session.begin_answer()
    for frame in frames:
        clock.advance_to(float(frame.get("t", clock.now)))
        if "poses" in frame:
            poses = [[Keypoint(**kp) for kp in subject] for subject in frame["poses"] or []]
            session.on_pose_result(poses, recording=True)
            if calibrate and session.baseline is None and session.last_keypoints is not None:
                session.set_baseline()
        if "expressions" in frame:
            session.on_expression_result(frame["expressions"], recording=True)
    dists = session.end_answer()
    return {
        "posture_distribution": dists["posture"],
        "emotion_distribution": dists["emotion"],
        "baseline": session.baseline.model_dump() if session.baseline else None,
        "notifications": [n.model_dump() for n in notes.items],
    }

def main():
    p = argparse.ArgumentParser()
    p.add_argument("--frames", required=True, help="Path to recorded frames JSON")
    p.add_argument("--out", default="output/replay.json", help="Path to output JSON")
    p.add_argument("--calibrate", action="store_true", help="Calibrate baseline from the first usable frame")
    args = p.parse_args()

    with open(args.frames, "r", encoding="utf-8") as f:
        frames = json.load(f)
    result = replay(frames, Settings(), calibrate=args.calibrate)
    print(json.dumps(result, indent=2, ensure_ascii=False))

    # Also write to file
    os.makedirs(os.path.dirname(args.out) or ".", exist_ok=True)
    with open(args.out, "w", encoding="utf-8") as f:
        json.dump(result, f, indent=2, ensure_ascii=False)
    print(f"✅ Replay written to {args.out}")

if __name__ == "__main__":
    main()
