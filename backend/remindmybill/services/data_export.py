import csv
import io
from decimal import Decimal, InvalidOperation

from openpyxl import Workbook
from sqlalchemy.ext.asyncio import AsyncSession

from remindmybill.models.subscription import Subscription
from remindmybill.schemas.data_export import ImportResult
from remindmybill.services.currency import round_money, sanitize_currency
from remindmybill.services.date_cycle import normalize_frequency, parse_date

EXPORT_COLUMNS = [
    "name", "cost", "currency", "frequency", "category", "renewal_date",
    "status", "is_trial", "shared_with_count", "notes",
]

_TRUE_VALUES = ("true", "1", "yes")
# Subscription.cost is Numeric(10, 2)
MAX_COST = Decimal("100000000")


def _row(s: Subscription) -> list:
    return [
        s.name, s.cost, s.currency, s.frequency, s.category or "", str(s.renewal_date),
        s.status, s.is_trial, s.shared_with_count, s.notes or "",
    ]


def export_subscriptions_csv(subscriptions: list[Subscription]) -> str:
    output = io.StringIO()
    writer = csv.writer(output)
    writer.writerow(EXPORT_COLUMNS)
    for s in subscriptions:
        writer.writerow([str(v) for v in _row(s)])
    return output.getvalue()


def export_subscriptions_xlsx(subscriptions: list[Subscription]) -> bytes:
    wb = Workbook()
    ws = wb.active
    ws.title = "Subscriptions"
    ws.append(EXPORT_COLUMNS)
    for s in subscriptions:
        row = _row(s)
        row[1] = float(s.cost)
        ws.append(row)
    output = io.BytesIO()
    wb.save(output)
    return output.getvalue()


def _parse_cost(raw: str | None) -> Decimal:
    try:
        cost = Decimal((raw or "0").strip())
    except InvalidOperation:
        raise ValueError(f"invalid cost {raw!r}") from None
    if not cost.is_finite():
        raise ValueError(f"invalid cost {raw!r}")
    if cost < 0:
        raise ValueError("cost must not be negative")
    if cost >= MAX_COST or round_money(cost) >= MAX_COST:
        raise ValueError(f"cost {raw!r} is too large")
    return round_money(cost)


def _parse_row(row: dict, user_id: int) -> Subscription:
    name = (row.get("name") or "").strip()
    if not name:
        raise ValueError("name is empty")
    cost = _parse_cost(row.get("cost"))
    shared = int(row.get("shared_with_count") or 1)
    if shared < 1:
        raise ValueError("shared_with_count must be at least 1")
    return Subscription(
        user_id=user_id,
        name=name,
        cost=cost,
        currency=sanitize_currency(row.get("currency")),
        frequency=normalize_frequency(row.get("frequency")),
        category=(row.get("category") or "").strip() or None,
        renewal_date=parse_date(row.get("renewal_date") or ""),
        status="active",
        is_locked=False,
        is_trial=(row.get("is_trial") or "").strip().lower() in _TRUE_VALUES,
        shared_with_count=shared,
        notes=row.get("notes") or None,
    )


async def import_subscriptions_from_text(text: str, user_id: int, db: AsyncSession) -> ImportResult:
    reader = csv.DictReader(io.StringIO(text))
    total = 0
    imported = 0
    errors: list[str] = []
    for row in reader:
        total += 1
        try:
            db.add(_parse_row(row, user_id))
        except ValueError as e:
            errors.append(f"Row {total}: {e}")
            continue
        imported += 1
    await db.flush()
    return ImportResult(total_rows=total, imported=imported, skipped=total - imported, errors=errors)
