"""Builder.* RPC methods."""

from ddc.app.api.registry import RpcContext, RpcRouter
from ddc.app.schemas.rpc import (
    BuilderAppendDocumentPartArgs,
    BuilderAppendSignatureArgs,
    BuilderBuildArgs,
    BuilderGetDDCPartArgs,
    BuilderRegisterArgs,
    ErrorResp,
    PartResp,
    RegisterResp,
    SessionArgs,
)
from ddc.app.sessions.builder import BuilderSession
from ddc.app.sessions.store import SessionKind

rpc = RpcRouter("Builder")


@rpc.method("Register", BuilderRegisterArgs, RegisterResp)
async def register(args: BuilderRegisterArgs, ctx: RpcContext) -> RegisterResp:
    session = BuilderSession.register(
        title=args.title,
        description=args.description,
        file_name=args.file_name,
        document_id=args.document_id,
        id_qr_code=args.id_qr_code,
        language=args.language,
    )
    return RegisterResp(session_id=ctx.store.create(SessionKind.BUILDER, session))


@rpc.method("AppendDocumentPart", BuilderAppendDocumentPartArgs)
async def append_document_part(
    args: BuilderAppendDocumentPartArgs, ctx: RpcContext
) -> ErrorResp:
    async with ctx.store.session(args.session_id, SessionKind.BUILDER) as session:
        session.append_document_part(args.data)
    return ErrorResp()


@rpc.method("AppendSignature", BuilderAppendSignatureArgs)
async def append_signature(
    args: BuilderAppendSignatureArgs, ctx: RpcContext
) -> ErrorResp:
    async with ctx.store.session(args.session_id, SessionKind.BUILDER) as session:
        await session.append_signature(args.signature_info, ctx.scanner)
    return ErrorResp()


@rpc.method("Build", BuilderBuildArgs)
async def build(args: BuilderBuildArgs, ctx: RpcContext) -> ErrorResp:
    async with ctx.store.session(args.session_id, SessionKind.BUILDER) as session:
        await session.build(
            ctx.scanner,
            ctx.renderer,
            creation_date=args.creation_date,
            builder_name=args.builder_name,
            how_to_verify=args.how_to_verify,
            visualize_document=not args.without_document_visualization,
            visualize_signatures=not args.without_signatures_visualization,
        )
    return ErrorResp()


@rpc.method("GetDDCPart", BuilderGetDDCPartArgs, PartResp)
async def get_ddc_part(args: BuilderGetDDCPartArgs, ctx: RpcContext) -> PartResp:
    async with ctx.store.session(args.session_id, SessionKind.BUILDER) as session:
        part, is_final = session.get_ddc_part(args.max_part_size)
    return PartResp(part=part, is_final=is_final)


@rpc.method("Drop", SessionArgs)
async def drop(args: SessionArgs, ctx: RpcContext) -> ErrorResp:
    ctx.store.delete(args.session_id)
    return ErrorResp()
