from phutho_rate.scoring.types import AggregateResult, RatingBand, UNRATED_BAND


def classify(score: float, ratings: list[RatingBand] | None) -> RatingBand:
    """
    First band (by ``min_score`` descending) that ``score`` reaches.

    A score below every band falls back to the lowest band. Overlapping
    thresholds resolve to the higher band.
    """
    if not ratings:
        return UNRATED_BAND
    ordered = sorted(ratings, key=lambda b: b.min_score, reverse=True)
    for band in ordered:
        if score >= band.min_score:
            return band
    return ordered[-1]


def rate(result: AggregateResult, ratings: list[RatingBand] | None) -> RatingBand:
    if not result.is_rated:
        return UNRATED_BAND
    return classify(result.overall_average, ratings)
