import logging
from pathlib import Path

from abbucket.sdk import ABTestSDK
from abbucket.services.config_sync import build_sdk
from abbucket.utils.config_loader import load_config
from abbucket.utils.generate import generate_user_ids


def main():
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    print("🚀 Search layer demo\n")

    # Step 1: configure in code
    sdk = ABTestSDK()
    sdk.register_experiment("search_exp", "Exact_match_test", 0.3, ["1-10", "41-60"])
    sdk.register_experiment("search_exp", "Spellcheck", 0.2, ["11-30"])
    sdk.add_group_table(
        "search_exp",
        "Exact_match_test",
        {
            "test1": {"weight": 3, "param": "show_exact_match"},
            "control1": {"weight": 6, "param": "default"},
            "control2": {"weight": 1, "param": "default"},
        },
    )
    sdk.add_group_table(
        "search_exp",
        "Spellcheck",
        {
            "test": {"weight": 0.33, "param": "enable_auto_spell_check"},
            "control1": {"weight": 0.33, "param": "without_auto_spell_check"},
            "control2": {"weight": 0.33, "param": "without_auto_spell_check"},
        },
    )
    sdk.freeze()

    # Step 2: single user, repeated
    print("\n👤 Stability check...")
    results = sdk.check_stability("search_exp", "1306810399759", iterations=50)
    for outcome in results:
        print(outcome.to_row())
    print("stable" if len(results) == 1 else "UNSTABLE")

    # Step 3: synthetic population
    print("\n📊 Distribution over 10,000 synthetic users...")
    preview = sdk.preview_assignment_distribution("search_exp", generate_user_ids(10000, seed=42))
    for key, count in sorted(preview["assignment_distribution"].items()):
        print(f"  {key}: {count}")
    print(f"  unassigned: {preview['unassigned_count']}")

    # Step 4: the same configuration from YAML gives the same answer
    yaml_sdk = build_sdk(load_config(Path(__file__).with_name("search_exp.yaml")))
    assert yaml_sdk.assign("search_exp", "1306810399759") == sdk.assign("search_exp", "1306810399759")
    print("\n✅ YAML configuration matches in-code configuration")


if __name__ == "__main__":
    main()
