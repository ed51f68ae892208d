import argparse
import json
import logging
import sys

from abbucket.services.batch import annotate_csv, assign_file
from abbucket.services.config_sync import build_sdk
from abbucket.utils.config_loader import load_config
from abbucket.utils.generate import generate_user_ids


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="abbucket", description="Deterministic layered A/B assignment")
    parser.add_argument("--config", required=True, help="YAML file with layers and experiments")
    parser.add_argument("--log-level", default="INFO")
    sub = parser.add_subparsers(dest="command", required=True)

    assign = sub.add_parser("assign", help="assign every user id in a file")
    assign.add_argument("layer")
    assign.add_argument("input")
    assign.add_argument("output")
    assign.add_argument("--column", default=None, help="user id column for CSV input")
    assign.add_argument("--annotate", action="store_true", help="keep input columns and append experiment/group")

    stability = sub.add_parser("stability", help="repeat the assignment of one user")
    stability.add_argument("layer")
    stability.add_argument("user_id")
    stability.add_argument("--iterations", type=int, default=50)

    info = sub.add_parser("layer-info", help="show bucket usage of a layer")
    info.add_argument("layer")

    preview = sub.add_parser("preview", help="distribution over a synthetic population")
    preview.add_argument("layer")
    preview.add_argument("--users", type=int, default=10000)
    preview.add_argument("--seed", type=int, default=0)
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=args.log_level.upper(), format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    sdk = build_sdk(load_config(args.config))

    if args.command == "assign":
        if args.annotate:
            result = annotate_csv(sdk, args.layer, args.input, args.output, args.column)
        else:
            result = assign_file(sdk, args.layer, args.input, args.output, args.column)
        print(json.dumps(result, indent=2, ensure_ascii=False))
    elif args.command == "stability":
        results = sdk.check_stability(args.layer, args.user_id, args.iterations)
        for outcome in results:
            print(json.dumps(outcome.to_dict(), ensure_ascii=False, default=str))
        if len(results) != 1:
            return 1
    elif args.command == "layer-info":
        print(json.dumps(sdk.get_layer_info(args.layer), indent=2, ensure_ascii=False))
    elif args.command == "preview":
        user_ids = generate_user_ids(args.users, seed=args.seed)
        print(json.dumps(sdk.preview_assignment_distribution(args.layer, user_ids), indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
