"""Drive / Apps Script publishing models"""

from __future__ import annotations

from pydantic import BaseModel


class CreateScriptRequest(BaseModel):
    """Save generated code to Drive as an Apps Script file"""

    scriptContent: str
    accessToken: str
    fileName: str | None = None


class CreateScriptResult(BaseModel):
    success: bool
    fileId: str | None = None
    webViewLink: str | None = None
    name: str | None = None
    error: str | None = None
    needsReAuth: bool = False


class PublishScriptRequest(BaseModel):
    """Create a version and deployment for an existing script"""

    scriptId: str
    accessToken: str
    description: str | None = None


class PublishScriptResult(BaseModel):
    success: bool
    deploymentId: str | None = None
    versionNumber: int | None = None
    deploymentUrl: str | None = None
    error: str | None = None
    needsReAuth: bool = False


class ScriptNameRequest(BaseModel):
    description: str
    apiKey: str | None = None


class ScriptNameResponse(BaseModel):
    name: str
