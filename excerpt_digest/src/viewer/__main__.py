from __future__ import annotations
import argparse
import json
from dataclasses import asdict

from digest.config import FETCH_WORKERS, SUMMARY_BOX_HEADERS, SUMMARY_SENTENCES
from digest.markup import remove_markup
from viewer import open_session


def _print_results(eng, as_json: bool) -> None:
    rows = eng.results()
    if as_json:
        print(json.dumps(rows, ensure_ascii=False, indent=2))
        return
    if not rows:
        print("(no excerpts)"); return
    print(f"[{eng.caption}]  epoch={eng.epoch}")
    print("#  Slot  Doc     Summary")
    for i, r in enumerate(rows, 1):
        print(f"{i:<2} {r['slot']:<5} {r['doc_id']:<7} {remove_markup(r['summary'])[:100]}")


def _print_summary(eng, headers: int, sentences: int, as_json: bool) -> None:
    entries = eng.summary(headers, sentences)
    if as_json:
        print(json.dumps([asdict(e) for e in entries], ensure_ascii=False, indent=2))
        return
    for e in entries:
        print(f"{e.display_text} ({e.sentence_count})")
        for s in e.sentences:
            print(f"    - {remove_markup(s.html)}")


def _print_facets(eng) -> None:
    for b in eng.breadcrumbs():
        print(f"  [{b['index']}] {b['label']}")
    for c in eng.candidate_labels():
        print(f"  +{c['keyword_id']:<8} {c['label']} ({c['occurrence']})")


HELP = """commands:
  r                 ranked excerpts
  s                 summary
  f                 facets (selected + candidates)
  + <keyword id>    add facet
  - <index>         remove facet
  k <text>          add free-text keywords
  m                 fetch one more document
  (empty line)      exit"""


def main(argv: list[str] | None = None) -> int:
    p = argparse.ArgumentParser(description="Excerpt digest CLI (session-backed)")
    p.add_argument("--session", required=True, help="Session JSON file")
    p.add_argument("--source", default=None, help='Collaborator DSN: "http://host" or "memory://"')
    p.add_argument("--workers", type=int, default=FETCH_WORKERS)
    p.add_argument("--headers", type=int, default=SUMMARY_BOX_HEADERS, help="Summary phrases")
    p.add_argument("--sentences", type=int, default=SUMMARY_SENTENCES, help="Sentences per phrase")
    p.add_argument("--summary", action="store_true", help="Print the cluster summary")
    p.add_argument("--repl", action="store_true", help="Interactive loop after init")
    p.add_argument("--json", action="store_true", help="Emit JSON")
    p.add_argument("--verbose", action="store_true")
    args = p.parse_args(argv)

    eng = open_session(args.session, source=args.source, workers=args.workers, verbose=args.verbose)
    try:
        eng.settle()
        eng.rerank()
        _print_results(eng, args.json)
        if args.summary:
            _print_summary(eng, args.headers, args.sentences, args.json)

        if args.repl:
            print(HELP)
            while True:
                try:
                    line = input("> ").strip()
                except (EOFError, KeyboardInterrupt):
                    break
                if not line:
                    break
                cmd, _, arg = line.partition(" ")
                try:
                    if cmd == "r":
                        _print_results(eng, args.json)
                    elif cmd == "s":
                        _print_summary(eng, args.headers, args.sentences, args.json)
                    elif cmd == "f":
                        _print_facets(eng)
                    elif cmd == "+":
                        eng.add_facet(int(arg)); eng.settle(); eng.rerank(); _print_results(eng, args.json)
                    elif cmd == "-":
                        eng.remove_facet(int(arg)); eng.settle(); eng.rerank(); _print_results(eng, args.json)
                    elif cmd == "k":
                        eng.add_keywords(arg); eng.settle(); eng.rerank(); _print_results(eng, args.json)
                    elif cmd == "m":
                        eng.fetch_more(); eng.settle(); _print_results(eng, args.json)
                    else:
                        print(HELP)
                except ValueError:
                    print(HELP)

        return 0
    finally:
        eng.shutdown()

if __name__ == "__main__":
    raise SystemExit(main())
