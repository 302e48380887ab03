"""
mock_store.py — Mock Implementation of the Relational Store (PostgREST-style REST API)

This module simulates the hosted database the storefront writes orders to.
It keeps tables in memory and understands the subset of the PostgREST protocol
the checkout service uses: equality filters (`column=eq.value`), the `select`
parameter and the `Prefer: return=representation` header.

Simulation Scenarios:
    • Successful inserts with generated 'id' and 'order_number'
    • Failing 'order_items' insert when a product name contains "FAIL-ITEMS"
    • Failing 'orders' insert when the customer name contains "FAIL-ORDER"
    • Foreign key violation for items referencing an unknown order

Endpoints:
    POST   /rest/v1/{table} — Insert rows
    GET    /rest/v1/{table} — Select rows
    PATCH  /rest/v1/{table} — Update rows
    DELETE /rest/v1/{table} — Delete rows (deleting an order also deletes its items)

Port:
    Default: 8002 (HTTP)
"""

import itertools
import logging
import uuid

from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse

app = FastAPI(title="Mock Store")
logging.basicConfig(level=logging.INFO)

TABLES = {"orders": [], "order_items": [], "user_addresses": []}
_order_numbers = itertools.count(1)


def reset():
    """Empties all tables (used between tests)."""
    global _order_numbers
    for rows in TABLES.values():
        rows.clear()
    _order_numbers = itertools.count(1)


def _error(status_code: int, message: str, code: str = "P0001") -> JSONResponse:
    return JSONResponse({"code": code, "message": message}, status_code=status_code)


def _filters(request: Request) -> dict:
    filters = {}
    for column, value in request.query_params.items():
        if column == "select":
            continue
        if value.startswith("eq."):
            filters[column] = value[3:]
    return filters


def _as_text(value) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _matches(row: dict, filters: dict) -> bool:
    return all(column in row and _as_text(row[column]) == value for column, value in filters.items())


def _project(row: dict, select: str) -> dict:
    if not select or select == "*":
        return dict(row)
    columns = [c.strip() for c in select.split(",")]
    return {c: row.get(c) for c in columns}


@app.post("/rest/v1/{table}")
async def insert_rows(table: str, request: Request):
    if table not in TABLES:
        return _error(404, f'relation "public.{table}" does not exist', code="42P01")

    payload = await request.json()
    rows = payload if isinstance(payload, list) else [payload]

    if table == "orders":
        for row in rows:
            if "FAIL-ORDER" in (row.get("customer_name") or ""):
                logging.warning("[STORE] Simulating failed order insert.")
                return _error(500, "could not insert into orders")
    if table == "order_items":
        order_ids = {o["id"] for o in TABLES["orders"]}
        for row in rows:
            if "FAIL-ITEMS" in (row.get("product_name") or ""):
                logging.warning("[STORE] Simulating failed order_items insert.")
                return _error(400, 'new row for relation "order_items" violates check constraint', code="23514")
            if row.get("order_id") not in order_ids:
                return _error(409, 'insert or update on table "order_items" violates foreign key constraint',
                              code="23503")

    created = []
    for row in rows:
        row = dict(row)
        row.setdefault("id", str(uuid.uuid4()))
        if table == "orders":
            row.setdefault("order_number", f"ORD{next(_order_numbers):06d}")
        created.append(row)
    TABLES[table].extend(created)
    logging.info(f"[STORE] {len(created)} row(s) inserted into {table}.")

    if "return=representation" in request.headers.get("prefer", ""):
        select = request.query_params.get("select", "*")
        return JSONResponse([_project(r, select) for r in created], status_code=201)
    return Response(status_code=201)


@app.get("/rest/v1/{table}")
def select_rows(table: str, request: Request):
    if table not in TABLES:
        return _error(404, f'relation "public.{table}" does not exist', code="42P01")
    filters = _filters(request)
    select = request.query_params.get("select", "*")
    return [_project(r, select) for r in TABLES[table] if _matches(r, filters)]


@app.patch("/rest/v1/{table}")
async def update_rows(table: str, request: Request):
    if table not in TABLES:
        return _error(404, f'relation "public.{table}" does not exist', code="42P01")
    patch = await request.json()
    filters = _filters(request)
    for row in TABLES[table]:
        if _matches(row, filters):
            row.update(patch)
    return Response(status_code=204)


@app.delete("/rest/v1/{table}")
def delete_rows(table: str, request: Request):
    if table not in TABLES:
        return _error(404, f'relation "public.{table}" does not exist', code="42P01")
    filters = _filters(request)
    removed = [r for r in TABLES[table] if _matches(r, filters)]
    TABLES[table][:] = [r for r in TABLES[table] if not _matches(r, filters)]

    if table == "orders":
        removed_ids = {r["id"] for r in removed}
        TABLES["order_items"][:] = [i for i in TABLES["order_items"] if i.get("order_id") not in removed_ids]

    logging.info(f"[STORE] {len(removed)} row(s) deleted from {table}.")
    return Response(status_code=204)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8002)
