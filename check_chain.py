from dotenv import load_dotenv
load_dotenv()
from app.core.config import CHAIN_RPC_URL, CONTRACT_ADDRESS, CHAIN_ID
from app.chain.gateway import ChainGateway
from app.core.exceptions import ChainError, UpstreamError
from app.db.session import get_db_session
from app.services.sync_service import build_sync_report

gateway = ChainGateway(CHAIN_RPC_URL, CONTRACT_ADDRESS, chain_id=CHAIN_ID)

print(f'RPC configured: {bool(CHAIN_RPC_URL)}')
print(f'Contract: {CONTRACT_ADDRESS or "not set"}')

try:
    gateway.connect()
except ChainError as e:
    print(f'❌ Connection failed: {e}')
    raise SystemExit(1)

print(f'✅ Connected, next block: {gateway.next_block}')

campaigns = gateway.get_campaigns()
print(f'On-chain campaigns: {len(campaigns)}')
for c in campaigns:
    print(f'  #{c.contract_id} {c.title} collected={c.amount_collected} target={c.target}')

with get_db_session() as db:
    try:
        report = build_sync_report(db, gateway)
    except UpstreamError as e:
        print(f'❌ Sync check failed: {e}')
        raise SystemExit(1)

print(f'\nIn sync: {report.in_sync}/{report.on_chain_count}')
for entry in report.drift:
    print(f'  #{entry.contract_id}: {entry.status}')

gateway.close()
