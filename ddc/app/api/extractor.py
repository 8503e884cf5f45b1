"""Extractor.* RPC methods."""

from ddc.app.api.registry import RpcContext, RpcRouter
from ddc.app.schemas.rpc import (
    ErrorResp,
    ExtractorAppendDDCPartArgs,
    ExtractorGetDocumentPartArgs,
    ExtractorGetSignatureResp,
    ExtractorParseResp,
    ExtractorRegisterArgs,
    PartResp,
    RegisterResp,
    SessionArgs,
)
from ddc.app.sessions.extractor import ExtractorSession
from ddc.app.sessions.store import SessionKind

rpc = RpcRouter("Extractor")


@rpc.method("Register", ExtractorRegisterArgs, RegisterResp)
async def register(args: ExtractorRegisterArgs, ctx: RpcContext) -> RegisterResp:
    session_id = ctx.store.create(SessionKind.EXTRACTOR, ExtractorSession())
    return RegisterResp(session_id=session_id)


@rpc.method("AppendDDCPart", ExtractorAppendDDCPartArgs)
async def append_ddc_part(
    args: ExtractorAppendDDCPartArgs, ctx: RpcContext
) -> ErrorResp:
    async with ctx.store.session(args.session_id, SessionKind.EXTRACTOR) as session:
        session.append_ddc_part(args.part)
    return ErrorResp()


@rpc.method("Parse", SessionArgs, ExtractorParseResp)
async def parse(args: SessionArgs, ctx: RpcContext) -> ExtractorParseResp:
    async with ctx.store.session(args.session_id, SessionKind.EXTRACTOR) as session:
        file_name = await session.parse(ctx.scanner)
    return ExtractorParseResp(document_file_name=file_name)


@rpc.method("GetDocumentPart", ExtractorGetDocumentPartArgs, PartResp)
async def get_document_part(
    args: ExtractorGetDocumentPartArgs, ctx: RpcContext
) -> PartResp:
    async with ctx.store.session(args.session_id, SessionKind.EXTRACTOR) as session:
        part, is_final = session.get_document_part(
            args.max_part_size, rewind=args.rewind
        )
    return PartResp(part=part, is_final=is_final)


@rpc.method("GetSignature", SessionArgs, ExtractorGetSignatureResp)
async def get_signature(
    args: SessionArgs, ctx: RpcContext
) -> ExtractorGetSignatureResp:
    async with ctx.store.session(args.session_id, SessionKind.EXTRACTOR) as session:
        signature, is_final = session.get_signature()
    return ExtractorGetSignatureResp(signature=signature, is_final=is_final)


@rpc.method("Drop", SessionArgs)
async def drop(args: SessionArgs, ctx: RpcContext) -> ErrorResp:
    ctx.store.delete(args.session_id)
    return ErrorResp()
