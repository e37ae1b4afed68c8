import argparse
import csv
import json
import time

from .models import SearchQuery
from .service import build_service, run_search


def run_checks(queries, min_price: int, max_price: int):
    service = build_service()
    rows = []
    started = time.perf_counter()
    try:
        for text in queries:
            query_started = time.perf_counter()
            payload = run_search(service, SearchQuery.from_params(text, min_price, max_price))
            results = payload["results"]
            rows.append({
                "query": text,
                "error": payload.get("error", ""),
                "count": len(results),
                "links": sum(1 for item in results if item["affiliate_url"]),
                "elapsed": round(time.perf_counter() - query_started, 2),
                "top_product": results[0]["product_name"] if results else "",
            })
    finally:
        service.shutdown()
    return rows, time.perf_counter() - started


def write_outputs(rows, elapsed, json_path: str, csv_path: str):
    payload = {
        "elapsed_seconds": round(elapsed, 2),
        "queries": rows,
    }
    with open(json_path, "w", encoding="utf-8") as json_handle:
        json.dump(payload, json_handle, indent=2, ensure_ascii=False)
    with open(csv_path, "w", newline="", encoding="utf-8") as csv_handle:
        writer = csv.writer(csv_handle)
        writer.writerow(["query", "error", "count", "links", "elapsed", "top_product"])
        for row in sorted(rows, key=lambda item: (item["links"], item["query"].lower())):
            writer.writerow([row["query"], row["error"], row["count"], row["links"], row["elapsed"], row["top_product"]])


def main():
    parser = argparse.ArgumentParser(description="QA check for listing search and affiliate link extraction.")
    parser.add_argument("--query", action="append", required=True, help="Search query to test (repeatable)")
    parser.add_argument("--min-price", type=int, default=0, help="Minimum price, 0 for none")
    parser.add_argument("--max-price", type=int, default=0, help="Maximum price, 0 for none")
    parser.add_argument("--json", default="qa_report.json", help="Output JSON path")
    parser.add_argument("--csv", default="qa_report.csv", help="Output CSV path")
    args = parser.parse_args()

    rows, elapsed = run_checks(args.query, args.min_price, args.max_price)
    write_outputs(rows, elapsed, args.json, args.csv)
    missing = [row for row in rows if row["links"] < row["count"] or row["error"]]
    print(f"[qa] {len(rows)} queries checked in {elapsed:.2f}s")
    print(f"[qa] {len(missing)} queries with errors or unresolved links")
    for row in sorted(missing, key=lambda item: item["query"].lower()):
        detail = row["error"] or f"{row['links']}/{row['count']} links"
        print(f" - {row['query']} ({detail})")


if __name__ == "__main__":
    main()
