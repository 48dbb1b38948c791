from __future__ import annotations

import argparse
import time
from pathlib import Path

import cv2

from gesturetree.core.gesture_classifier import GestureClassifier
from gesturetree.core.hand_tracker import HandTracker, HandTrackerConfig
from gesturetree.utils.landmark_preprocess import save_landmark_csv


def main() -> None:
    parser = argparse.ArgumentParser(description="采集单帧手部关键点，用于离线调试手势阈值")
    parser.add_argument("label", help="手势标签，如 pinch/fist/open")
    parser.add_argument("--output-dir", type=Path, default=Path("data/landmarks"))
    parser.add_argument("--camera-index", type=int, default=0)
    args = parser.parse_args()

    output_dir = args.output_dir / args.label
    tracker = HandTracker(HandTrackerConfig())
    classifier = GestureClassifier()
    cap = cv2.VideoCapture(args.camera_index)
    print("按空格记录一帧，按 q 退出。")

    try:
        while True:
            ret, frame = cap.read()
            if not ret:
                break
            packet = tracker.process(frame)
            if packet:
                reading = classifier.classify(packet)
                cv2.putText(
                    frame,
                    f"{reading.gesture.value} pinch={reading.pinch_distance:.3f} spread={reading.finger_spread:.3f}",
                    (20, 40),
                    cv2.FONT_HERSHEY_SIMPLEX,
                    0.8,
                    (0, 255, 0),
                    2,
                )
            cv2.imshow("Record Landmarks", frame)
            key = cv2.waitKey(1) & 0xFF
            if key == ord(" "):
                if packet:
                    csv_path = output_dir / f"{args.label}_{int(time.time() * 1000)}.csv"
                    save_landmark_csv(packet.landmarks, csv_path)
                    print(f"已保存关键点：{csv_path}")
            elif key == ord("q"):
                break
    finally:
        cap.release()
        tracker.close()
        cv2.destroyAllWindows()


if __name__ == "__main__":
    main()
