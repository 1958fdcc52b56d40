from threading import Lock
from typing import Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from symsheet import Worksheet, WorksheetError

app = FastAPI(title="SymSheet API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.state.worksheet = Worksheet()

# Sync handlers run in a thread pool; one action at a time per worksheet.
_lock = Lock()


def get_worksheet(request: Request) -> Worksheet:
    """Current worksheet; call with ``_lock`` held so a reset cannot swap it out."""
    return request.app.state.worksheet


class StatementRequest(BaseModel):
    markup: str = ""


class SymbolRequest(BaseModel):
    value: Optional[float] = None
    given: bool = False


class EntryRequest(BaseModel):
    text: str


class SubstitutionRequest(BaseModel):
    held_id: int
    target_id: int


class SimplificationInfo(BaseModel):
    name: str
    before: str
    after: str


class StatementInfo(BaseModel):
    id: int
    markup: str
    kind: Optional[str]
    display: str
    warning: str
    symbols: list[str]
    simplifications: list[SimplificationInfo]
    result: Optional[float]


class SymbolInfo(BaseModel):
    value: Optional[float]
    given: bool


class WorksheetResponse(BaseModel):
    statements: list[StatementInfo]
    symbols: dict[str, SymbolInfo]
    diagnostic: str


@app.get("/api/worksheet", response_model=WorksheetResponse)
def read_worksheet(request: Request):
    with _lock:
        return get_worksheet(request).to_dict()


@app.post("/api/reset", response_model=WorksheetResponse)
def reset(request: Request):
    with _lock:
        request.app.state.worksheet = Worksheet()
        return request.app.state.worksheet.to_dict()


@app.post("/api/statements", response_model=StatementInfo)
def add_statement(req: StatementRequest, request: Request):
    with _lock:
        return get_worksheet(request).add_statement(req.markup).to_dict()


@app.put("/api/statements/{statement_id}", response_model=StatementInfo)
def edit_statement(statement_id: int, req: StatementRequest, request: Request):
    with _lock:
        worksheet = get_worksheet(request)
        try:
            stmt = worksheet.edit_statement(statement_id, req.markup)
        except WorksheetError as e:
            raise HTTPException(status_code=404, detail=str(e))
        return stmt.to_dict()


@app.delete("/api/statements/{statement_id}", response_model=WorksheetResponse)
def remove_statement(statement_id: int, request: Request):
    with _lock:
        worksheet = get_worksheet(request)
        try:
            worksheet.remove_statement(statement_id)
        except WorksheetError as e:
            raise HTTPException(status_code=404, detail=str(e))
        return worksheet.to_dict()


@app.post("/api/statements/{statement_id}/simplifications/{index}",
          response_model=StatementInfo)
def apply_simplification(statement_id: int, index: int, request: Request):
    with _lock:
        worksheet = get_worksheet(request)
        try:
            stmt = worksheet.apply_simplification(statement_id, index)
        except WorksheetError as e:
            raise HTTPException(status_code=404, detail=str(e))
        return stmt.to_dict()


@app.post("/api/substitutions", response_model=StatementInfo)
def substitute(req: SubstitutionRequest, request: Request):
    with _lock:
        worksheet = get_worksheet(request)
        try:
            stmt = worksheet.substitute(req.held_id, req.target_id)
        except WorksheetError as e:
            raise HTTPException(status_code=404, detail=str(e))
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
        return stmt.to_dict()


@app.put("/api/symbols/{name}", response_model=WorksheetResponse)
def set_symbol(name: str, req: SymbolRequest, request: Request):
    with _lock:
        worksheet = get_worksheet(request)
        try:
            worksheet.set_symbol(name, req.value, req.given)
        except WorksheetError as e:
            raise HTTPException(status_code=404, detail=str(e))
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
        return worksheet.to_dict()


@app.post("/api/symbols/{name}/entry", response_model=WorksheetResponse)
def enter_value(name: str, req: EntryRequest, request: Request):
    with _lock:
        worksheet = get_worksheet(request)
        try:
            worksheet.enter_value(name, req.text)
        except WorksheetError as e:
            raise HTTPException(status_code=404, detail=str(e))
        return worksheet.to_dict()
