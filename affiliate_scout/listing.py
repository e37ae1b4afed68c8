from __future__ import annotations

from typing import List, Optional

from .automation import PageDriver
from .models import Identity, ListingRow
from .parsing import parse_commission, parse_currency_to_int, parse_sold

SEARCH_INPUT = "#src"
MIN_PRICE_INPUT = "#min_price"
MAX_PRICE_INPUT = "#max_price"
RATING_SELECT = "#t_store_rating"
SEARCH_FORM = "form:has(#src)"
SUBMIT_BUTTON = 'form:has(#src) button[type="submit"]'
GRID = ".gridCampaigns.campaign-list.tiktok-product"
ROW = f"{GRID} .col"

TITLE = ".card-title"
SHOP = ".shop-name, .store-name"
PRICE = ".newPrice"
SOLD = ".sold"
COMMISSION = ".commission"
IMAGE = "img.card-img"
ROW_ID_ATTRIBUTES = ("data-id", "data-product-id")


def read_row(page: PageDriver, handle, index: int) -> Optional[ListingRow]:
    title = page.read_text(handle, TITLE)
    if not title:
        return None
    shop_name = page.read_text(handle, SHOP)

    element_id = None
    for attribute in ROW_ID_ATTRIBUTES:
        element_id = page.read_attribute(handle, None, attribute)
        if element_id:
            break

    image_url = page.read_attribute(handle, IMAGE, "src") or page.read_attribute(handle, IMAGE, "data-src")
    return ListingRow(
        index=index,
        identity=Identity.of(title, shop_name, element_id),
        title=title,
        shop_name=shop_name,
        price=parse_currency_to_int(page.read_text(handle, PRICE)),
        sold_count=parse_sold(page.read_text(handle, SOLD)),
        commission=parse_commission(page.read_text(handle, COMMISSION)),
        image_url=image_url or None,
        handle=handle,
    )


def scan_rows(page: PageDriver, *, limit: Optional[int] = None) -> List[ListingRow]:
    handles = page.locate(ROW)
    if limit is not None:
        handles = handles[:limit]
    rows: List[ListingRow] = []
    for index, handle in enumerate(handles):
        row = read_row(page, handle, index)
        if row is not None:
            rows.append(row)
    return rows
