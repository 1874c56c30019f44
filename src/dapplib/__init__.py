__all__ = [
    # Configuration
    "DappConfig",
    "IpfsConfig",
    "load_config",
    # Envelope
    "Formatter",
    "FormatterKind",
    "ResultEnvelope",
    "ResultType",
    # Multihash
    "MultihashDecomposition",
    "decode_multihash",
    # Gateways
    "Argument",
    "ChainGateway",
    "HttpChainGateway",
    "RequestDescriptor",
    "Roles",
    "ContentStore",
    "IpfsStore",
    "UploadFile",
    # Operations
    "DappContext",
    "UploadedFile",
    "add_event_handler",
    "get_account_info",
    "get_ids",
    "get_proposal_list",
    "initialize_account",
    "initialize_proposals",
    "ipfs_upload",
    "issue_ballot",
    "on_initialize_account",
    "vote",
    # Rendering
    "HtmlRenderer",
    # Errors
    "ArgumentTypeError",
    "ConfigError",
    "DappError",
    "DecodeError",
    "EventDeliveryError",
    "GatewayError",
]

from .chain import Argument, ChainGateway, HttpChainGateway, RequestDescriptor, Roles
from .config import DappConfig, IpfsConfig, load_config
from .dispatch import (
    DappContext,
    UploadedFile,
    add_event_handler,
    get_account_info,
    get_ids,
    get_proposal_list,
    initialize_account,
    initialize_proposals,
    ipfs_upload,
    issue_ballot,
    on_initialize_account,
    vote,
)
from .envelope import Formatter, FormatterKind, ResultEnvelope, ResultType
from .errors import (
    ArgumentTypeError,
    ConfigError,
    DappError,
    DecodeError,
    EventDeliveryError,
    GatewayError,
)
from .multihash import MultihashDecomposition
from .multihash import decode as decode_multihash
from .render import HtmlRenderer
from .store import ContentStore, IpfsStore, UploadFile
