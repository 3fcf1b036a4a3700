import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field

from sources import SOURCES

logger = logging.getLogger(__name__)


@dataclass
class AggregationResult:
    tokens: list
    sources: list = field(default_factory=list)

    @property
    def count(self):
        return len(self.tokens)

###############################################################################
# Merge
###############################################################################

def merge_tokens(records):
    """
    Deduplicate by case-folded address.

    On collision the later record replaces the kept one unless the kept one
    has strictly more populated fields. Records without an address are
    dropped since they can't be keyed or looked up later.
    """
    merged = {}
    dropped = 0
    for rec in records:
        if not rec.address:
            dropped += 1
            continue
        kept = merged.get(rec.key)
        if kept is None or rec.field_count() >= kept.field_count():
            merged[rec.key] = rec
    if dropped:
        logger.debug(f"[merge_tokens] => dropped {dropped} records without address")
    return list(merged.values())

###############################################################################
# Fan-out / fan-in
###############################################################################

def _source_name(adapter):
    return getattr(adapter, "source_name", getattr(adapter, "__name__", "unknown"))


def aggregate_tokens(sources=None):
    """
    Run every adapter at once, wait for all of them, merge the results.
    A failing adapter contributes nothing; it never aborts the others.
    """
    sources = SOURCES if sources is None else sources
    names = [_source_name(s) for s in sources]
    if not sources:
        return AggregationResult(tokens=[], sources=names)

    with ThreadPoolExecutor(max_workers=len(sources)) as executor:
        futures = [executor.submit(adapter) for adapter in sources]

        # collect in registration order so ties resolve the same way every time
        records = []
        for name, fut in zip(names, futures):
            try:
                contribution = fut.result() or []
            except Exception as e:
                logger.error(f"[aggregate_tokens] => source {name} raised: {e}")
                contribution = []
            logger.info(f"[aggregate_tokens] => {name}: {len(contribution)} records")
            records.extend(contribution)

    tokens = merge_tokens(records)
    logger.info(f"[aggregate_tokens] => {len(records)} records => {len(tokens)} unique tokens")
    return AggregationResult(tokens=tokens, sources=names)

###############################################################################
# Fallback
###############################################################################

def fetch_with_fallback(primary, secondary, label="fetch"):
    """
    Try primary; on an exception or an empty result try secondary once
    and return whatever it gives. Errors from secondary propagate.
    """
    try:
        result = primary()
        if result:
            return result
        logger.warning(f"[{label}] => primary source returned nothing, falling back")
    except Exception as e:
        logger.warning(f"[{label}] => primary source failed: {e}, falling back")
    return secondary()
