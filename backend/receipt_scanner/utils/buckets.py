"""
Helpers for grouping receipts into buckets.
"""

from collections import Counter
from typing import Dict, Iterable, List

from receipt_scanner.models.bucket import Bucket
from receipt_scanner.models.receipt import Receipt


def bucket_sort_key(bucket: Bucket):
    # year desc, month desc, category asc
    return (-bucket.year, -bucket.month, bucket.category)


def sort_buckets(buckets: Iterable[Bucket]) -> List[Bucket]:
    return sorted(buckets, key=bucket_sort_key)


def bucket_exists(buckets: Iterable[Bucket], year: int, month: int, category: str) -> bool:
    return any(
        b.year == year and b.month == month and b.category == category
        for b in buckets
    )


def receipt_counts_by_bucket(receipts: Iterable[Receipt]) -> Dict[str, int]:
    return dict(Counter(r.bucket_id for r in receipts if r.bucket_id))


def group_by_bucket(receipts: Iterable[Receipt]) -> Dict[str, List[Receipt]]:
    """Receipts grouped by bucket_id, preserving input order."""
    groups: Dict[str, List[Receipt]] = {}
    for receipt in receipts:
        if not receipt.bucket_id:
            continue
        groups.setdefault(receipt.bucket_id, []).append(receipt)
    return groups
