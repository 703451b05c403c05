"""
Price forecasting with index-based ordinary least squares.

x is the position of the point (0..n-1), not its timestamp, so irregular
sampling gaps do not distort the fit. Confidence is a heuristic mapping of
RMSE relative to the mean price, not a statistical interval.
"""
import logging
import math

import numpy as np

from .errors import ValidationError
from .models import PredictedPoint, PredictionResult, PricePoint, Recommendation, Trend

logger = logging.getLogger(__name__)

ONE_DAY_MS = 24 * 60 * 60 * 1000
MIN_POINTS = 3
BUY_THRESHOLD_PCT = 2.0
WAIT_THRESHOLD_PCT = -2.0


def fit_line(ys: np.ndarray) -> tuple[float, float]:
    """Slope and intercept of y over its index, from mean-centred sums."""
    xs = np.arange(len(ys), dtype=float)
    dx = xs - xs.mean()
    den = float(np.sum(dx ** 2))
    slope = 0.0 if den == 0 else float(np.sum(dx * (ys - ys.mean())) / den)
    intercept = float(ys.mean() - slope * xs.mean())
    return slope, intercept


def recommend(pct_change: float) -> Recommendation:
    if pct_change <= WAIT_THRESHOLD_PCT:
        return Recommendation.WAIT
    if pct_change >= BUY_THRESHOLD_PCT:
        return Recommendation.BUY
    return Recommendation.HOLD


def _validate(points: list[PricePoint], days: int) -> None:
    if len(points) < MIN_POINTS:
        raise ValidationError(
            f"Please provide at least {MIN_POINTS} historical price points: [{{ts, price}}, ...]"
        )
    for i, p in enumerate(points):
        if not math.isfinite(p.price) or p.price <= 0:
            raise ValidationError(f"Price point {i} must be a positive number, got {p.price}")
    if days < 1:
        raise ValidationError("days must be at least 1")


def predict_prices(points: list[PricePoint], days: int = 7) -> PredictionResult:
    _validate(points, days)

    n = len(points)
    ys = np.array([p.price for p in points], dtype=float)
    with np.errstate(over="ignore", invalid="ignore"):
        slope, intercept = fit_line(ys)
        forecast = slope * np.arange(n, n + days) + intercept
        residuals = ys - (slope * np.arange(n) + intercept)
        rmse = float(np.sqrt(np.mean(residuals ** 2)))
        mean_price = float(ys.mean()) or 1.0
        prices = [round(float(p), 2) for p in forecast]
        predicted_avg = sum(prices) / len(prices)
        last_price = float(ys[-1])
        pct_change = (predicted_avg - last_price) / last_price * 100

    # sums of very large prices overflow to inf/nan
    if not all(math.isfinite(v) for v in (slope, intercept, rmse, mean_price, predicted_avg, pct_change)):
        raise ValidationError("price values out of range")

    last_ts = points[-1].ts
    predictions = [
        PredictedPoint(
            ts=last_ts + (d + 1) * ONE_DAY_MS if last_ts is not None else None,
            price=price,
        )
        for d, price in enumerate(prices)
    ]
    confidence = int(math.floor((1 - min(1.0, rmse / mean_price)) * 100 + 0.5))

    if pct_change > 0:
        trend = Trend.UP
    elif pct_change < 0:
        trend = Trend.DOWN
    else:
        trend = Trend.FLAT

    logger.info(
        f"[PriceEngine] n={n} slope={slope:.4f} rmse={rmse:.4f} "
        f"change={pct_change:.2f}% -> {recommend(pct_change).value}"
    )

    return PredictionResult(
        slope=slope,
        intercept=intercept,
        rmse=rmse,
        confidence=confidence,
        predicted_avg=round(predicted_avg, 2),
        last_price=round(last_price, 2),
        pct_change=round(pct_change, 2),
        recommendation=recommend(pct_change),
        trend=trend,
        predictions=predictions,
        input_count=n,
    )
