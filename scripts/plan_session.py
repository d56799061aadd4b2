"""
Prints the stimulus plan a participant would receive for a given study config.
"""

from __future__ import annotations

import argparse
import json
import random
from typing import Any, Dict

from session.context import new_session_id, plan_phases
from stimuli.config import STUDY_CONFIG, load_study_config


def plan_to_dict(config_path: str, participant_id: str, seed: int | None) -> Dict[str, Any]:
    config = load_study_config(config_path)
    rng = random.Random(seed)
    plans = plan_phases(config, rng)
    return {
        "participant_id": participant_id,
        "session_id": new_session_id(rng),
        "phases": {
            str(phase): {
                "probe_offset": plan.probe_offset,
                "steps": [step.model_dump(mode="json") for step in plan.timeline],
            }
            for phase, plan in plans.items()
        },
    }


def main() -> None:
    parser = argparse.ArgumentParser()
    parser.add_argument("--config", default=STUDY_CONFIG, help="Path to study YAML")
    parser.add_argument("--participant", required=True)
    parser.add_argument("--seed", type=int, default=None)
    args = parser.parse_args()

    plan = plan_to_dict(args.config, args.participant, args.seed)
    print(json.dumps(plan, indent=2))


if __name__ == "__main__":
    main()
