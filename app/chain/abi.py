# app/chain/abi.py
"""Subset of the CrowdFunding contract ABI used by the backend"""

CAMPAIGN_CREATED = "CampaignCreated"
DONATION_RECEIVED = "DonationReceived"

CONTRACT_EVENTS = (CAMPAIGN_CREATED, DONATION_RECEIVED)

CONTRACT_ABI = [
    {
        "anonymous": False,
        "inputs": [
            {"indexed": True, "internalType": "uint256", "name": "campaignId", "type": "uint256"},
            {"indexed": True, "internalType": "address", "name": "owner", "type": "address"},
            {"indexed": False, "internalType": "string", "name": "title", "type": "string"},
            {"indexed": False, "internalType": "uint256", "name": "target", "type": "uint256"},
            {"indexed": False, "internalType": "uint256", "name": "deadline", "type": "uint256"},
        ],
        "name": CAMPAIGN_CREATED,
        "type": "event",
    },
    {
        "anonymous": False,
        "inputs": [
            {"indexed": True, "internalType": "uint256", "name": "campaignId", "type": "uint256"},
            {"indexed": True, "internalType": "address", "name": "donator", "type": "address"},
            {"indexed": False, "internalType": "uint256", "name": "amount", "type": "uint256"},
        ],
        "name": DONATION_RECEIVED,
        "type": "event",
    },
    {
        "inputs": [],
        "name": "getCampaigns",
        "outputs": [
            {
                "components": [
                    {"internalType": "uint256", "name": "id", "type": "uint256"},
                    {"internalType": "address payable", "name": "owner", "type": "address"},
                    {"internalType": "string", "name": "title", "type": "string"},
                    {"internalType": "string", "name": "description", "type": "string"},
                    {"internalType": "uint256", "name": "target", "type": "uint256"},
                    {"internalType": "uint256", "name": "deadline", "type": "uint256"},
                    {"internalType": "uint256", "name": "amountCollected", "type": "uint256"},
                    {"internalType": "string", "name": "image", "type": "string"},
                    {"internalType": "address[]", "name": "donators", "type": "address[]"},
                    {"internalType": "uint256[]", "name": "donations", "type": "uint256[]"},
                    {"internalType": "bool", "name": "withdrawn", "type": "bool"},
                ],
                "internalType": "struct CrowdFunding.Campaign[]",
                "name": "",
                "type": "tuple[]",
            }
        ],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "inputs": [{"internalType": "uint256", "name": "_id", "type": "uint256"}],
        "name": "getDonators",
        "outputs": [
            {"internalType": "address[]", "name": "", "type": "address[]"},
            {"internalType": "uint256[]", "name": "", "type": "uint256[]"},
        ],
        "stateMutability": "view",
        "type": "function",
    },
]
