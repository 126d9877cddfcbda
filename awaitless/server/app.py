#!/usr/bin/env python3
"""
awaitless FastAPI Server
Provides REST API for editor integrations: analysis and fixes
"""
from typing import Optional, List
from pathlib import Path

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from awaitless.core.config import RULE_ID, VERSION
from awaitless.server.client import AwaitlessClient


# ============================================================================
# Request/Response Models
# ============================================================================

class AnalyzeSourceRequest(BaseModel):
    source: str
    filename: Optional[str] = "<unknown>"


class AnalyzeFileRequest(BaseModel):
    file_path: str


class AnalysisResponse(BaseModel):
    success: bool
    result: Optional[dict] = None
    error: Optional[str] = None


class FixRequest(BaseModel):
    source: Optional[str] = None
    file_path: Optional[str] = None
    filename: Optional[str] = "<unknown>"
    functions: Optional[List[str]] = None
    source_hash: Optional[str] = None
    write: bool = False


class FixResponse(BaseModel):
    success: bool
    result: Optional[dict] = None
    error: Optional[str] = None


class HealthResponse(BaseModel):
    status: str
    version: str
    rule_id: str


# ============================================================================
# FastAPI App
# ============================================================================

app = FastAPI(
    title="awaitless API",
    description="Finds coroutines that only await and return, and rewrites them",
    version=VERSION
)

# Enable CORS for editor extensions
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Global client instance
awaitless_client: Optional[AwaitlessClient] = None


def get_client() -> AwaitlessClient:
    """Get or create the client instance"""
    global awaitless_client
    if awaitless_client is None:
        awaitless_client = AwaitlessClient()
    return awaitless_client


# ============================================================================
# Endpoints
# ============================================================================

@app.get("/", response_model=HealthResponse)
async def health():
    """Health check endpoint"""
    return {
        "status": "ok",
        "version": VERSION,
        "rule_id": RULE_ID
    }


@app.get("/api/rule")
async def rule():
    """Describe the rule reported by this server"""
    return get_client().describe_rule()


@app.post("/api/analyze", response_model=AnalysisResponse)
async def analyze(request: AnalyzeSourceRequest):
    """
    Analyze Python source sent by the editor.

    Example:
        POST /api/analyze
        {
            "source": "async def run() -> None:\\n    await do_something()\\n",
            "filename": "service.py"
        }
    """
    try:
        report = get_client().analyze_source(request.source, request.filename)
        return {
            "success": True,
            "result": report.to_dict()
        }

    except Exception as e:
        return {
            "success": False,
            "error": str(e)
        }


@app.post("/api/analyze-file", response_model=AnalysisResponse)
async def analyze_file(request: AnalyzeFileRequest):
    """
    Analyze a file on the server's filesystem.

    Example:
        POST /api/analyze-file
        {
            "file_path": "/path/to/service.py"
        }
    """
    if not Path(request.file_path).exists():
        raise HTTPException(status_code=404, detail="File not found")

    try:
        report = get_client().analyze_file(request.file_path)
        return {
            "success": True,
            "result": report.to_dict()
        }

    except Exception as e:
        return {
            "success": False,
            "error": str(e)
        }


@app.post("/api/fix", response_model=FixResponse)
async def fix(request: FixRequest):
    """
    Rewrite flagged functions, from source or from a file.

    A source_hash taken from an earlier analysis makes the fix fail when the
    source changed in between.

    Example:
        POST /api/fix
        {
            "file_path": "/path/to/service.py",
            "functions": ["Service.fetch"],
            "source_hash": "3f2a...",
            "write": true
        }
    """
    if request.source is None and request.file_path is None:
        raise HTTPException(status_code=400, detail="Either source or file_path is required")
    if request.source is None and not Path(request.file_path).exists():
        raise HTTPException(status_code=404, detail="File not found")

    try:
        client = get_client()
        if request.source is not None:
            report = client.fix_source(
                request.source,
                filename=request.filename,
                functions=request.functions,
                source_hash=request.source_hash
            )
        else:
            report = client.fix_file(
                request.file_path,
                functions=request.functions,
                source_hash=request.source_hash,
                write=request.write
            )

        return {
            "success": True,
            "result": report.to_dict()
        }

    except Exception as e:
        return {
            "success": False,
            "error": str(e)
        }


# ============================================================================
# Run Server
# ============================================================================

if __name__ == "__main__":
    import uvicorn

    print("=" * 60)
    print("awaitless API Server")
    print("=" * 60)
    print("Starting server on http://localhost:8000")
    print("API docs: http://localhost:8000/docs")
    print("=" * 60)

    uvicorn.run(app, host="0.0.0.0", port=8000)
