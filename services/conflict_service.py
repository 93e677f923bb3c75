from services.date_helpers import format_time, same_day


def ranges_overlap(a_start, a_end, b_start, b_end):
    # Closed intervals: touching boundaries overlap.
    return a_start <= b_end and a_end >= b_start


def find_conflicts(candidate, catalog, exclude_id=None):
    """Return the catalog entries that overlap `candidate` on the same day.

    Entries are compared by their own start/end only; recurring entries are
    not expanded. The entry whose id equals `exclude_id` (the event being
    edited) is skipped. Order follows the catalog.
    """
    conflicts = []
    for entry in catalog:
        if exclude_id is not None and entry.id == exclude_id:
            continue
        if not ranges_overlap(candidate.start, candidate.end, entry.start, entry.end):
            continue
        if same_day(candidate.start, entry.start):
            conflicts.append(entry)
    return conflicts


def describe_conflicts(conflicts):
    return [f'"{entry.title}" at {format_time(entry.start)}' for entry in conflicts]
