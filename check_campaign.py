from dotenv import load_dotenv
load_dotenv()
from app.db.session import get_db_session
from app.models.campaign import Campaign

with get_db_session() as db:
    # Get latest campaign
    campaign = db.query(Campaign).order_by(Campaign.created_at.desc()).first()

    if campaign:
        print(f'Latest Campaign: {campaign.title}')
        print(f'ID: {campaign.campaign_id} (contract #{campaign.contract_id})')
        print(f'Owner: {campaign.owner}')
        print(f'Target: {campaign.target} wei')
        print(f'Collected: {campaign.amount_collected} wei')
        print(f'Donations: {campaign.total_donations}')
        print(f'Deadline: {campaign.deadline.isoformat()}')
        print(f'\nDonators:')
        if campaign.donators:
            for donator in campaign.donators:
                print(f'  {donator.address} {donator.amount} ({donator.transaction_hash or "no tx"})')
        else:
            print('  No donations recorded')
    else:
        print('No campaigns found')
