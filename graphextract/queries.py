"""Built-in GraphQL queries per query type and subgraph deployment."""

from __future__ import annotations

_QUERY_VARIANTS: dict[str, dict[str, str]] = {
    "tokens": {
        "default": """{
  tokens(first: 1000) {
    id
    decimals
    name
    symbol
  }
}""",
        "9cT3GzNxcLWFXGAgqdJsydZkh9ajKEXn4hKvkRLJHgwv": """{
  tokens(first: 1000) {
    id
    decimals
    name
    symbol
    vault {
      id
    }
    isNative
  }
}""",
        "9EAxYE17Cc478uzFXRbM7PVnMUSsgb99XZiGxodbtpbk": """{
  tokens(first: 1000) {
    id
    decimals
    name
    symbol
    totalValueLockedUSD
    volume
    volumeUSD
  }
}""",
    },
    "transactions": {
        "default": """{
  transactions(first: 1000) {
    id
    blockNumber
    timestamp
  }
}""",
        "9cT3GzNxcLWFXGAgqdJsydZkh9ajKEXn4hKvkRLJHgwv": """{
  transactions(first: 1000) {
    id
    blockNumber
    event
    from
    gasLimit
    gasPrice
    gasSent
    hash
    index
    timestamp
    to
    value
  }
}""",
    },
    "factories": {
        "9EAxYE17Cc478uzFXRbM7PVnMUSsgb99XZiGxodbtpbk": """{
  factories(first: 1000) {
    id
    poolCount
    txCount
    totalVolumeUSD
    owner
    totalFeesUSD
    untrackedVolumeUSD
  }}""",
        "EMnAvnfc1fwGSU6ToqYJCeEkXmSgmDmhwtyaha1tM5oi": """{
  factories(first: 1000) {
    id
    poolCount
    txCount
    totalVolumeUSD
    owner
    totalFeesUSD
    untrackedVolumeUSD
  }}""",
    },
    "swaps": {
        "9EAxYE17Cc478uzFXRbM7PVnMUSsgb99XZiGxodbtpbk": """{
  swaps(first: 1000) {
    amountUSD
    id
    origin
    recipient
    sender
    timestamp
  }
}""",
        "EMnAvnfc1fwGSU6ToqYJCeEkXmSgmDmhwtyaha1tM5oi": """{
  swaps(first: 1000) {
    id
    timestamp
    amountUSD
  }
}""",
    },
    "_meta": {
        "9cT3GzNxcLWFXGAgqdJsydZkh9ajKEXn4hKvkRLJHgwv": """{
  _meta {
    deployment
    hasIndexingErrors
  }
}""",
        "9EAxYE17Cc478uzFXRbM7PVnMUSsgb99XZiGxodbtpbk": """{
   _meta {
    deployment
    hasIndexingErrors
  }
}""",
        "EMnAvnfc1fwGSU6ToqYJCeEkXmSgmDmhwtyaha1tM5oi": """{
  _meta {
    deployment
    hasIndexingErrors
  }
}""",
    },
    "vaults": {
        "9cT3GzNxcLWFXGAgqdJsydZkh9ajKEXn4hKvkRLJHgwv": """{
  vaults {
    defaultAlienDepositFee
    defaultAlienWithdrawFee
    defaultNativeDepositFee
    defaultNativeWithdrawFee
    id
  }
}""",
    },
    "withdraws": {
        "9cT3GzNxcLWFXGAgqdJsydZkh9ajKEXn4hKvkRLJHgwv": """{
  withdraws {
    amount
    fee
    id
    isNative
    payloadId
  }
}""",
    },
    "burns": {
        "9EAxYE17Cc478uzFXRbM7PVnMUSsgb99XZiGxodbtpbk": """{
  burns {
    amount
    amount0
    amount1
    amountUSD
    id
    logIndex
    origin
    owner
    tickLower
    tickUpper
    timestamp
  }
}""",
        "EMnAvnfc1fwGSU6ToqYJCeEkXmSgmDmhwtyaha1tM5oi": """{
  burns {
    amount
    amount0
    amount1
    amountUSD
    id
    logIndex
    origin
    owner
    tickLower
    tickUpper
    timestamp
  }
}""",
    },
    "accounts": {
        "9cT3GzNxcLWFXGAgqdJsydZkh9ajKEXn4hKvkRLJHgwv": """{
  accounts {
    id
  }
}""",
    },
    "pools": {
        "9EAxYE17Cc478uzFXRbM7PVnMUSsgb99XZiGxodbtpbk": """{
   pools {
    balanceOfBlock
    collectedFeesToken0
    collectedFeesToken1
    collectedFeesUSD
    createdAtBlockNumber
    createdAtTimestamp
    feeGrowthBlock
    feeGrowthGlobal0X128
    feeGrowthGlobal1X128
    feeTier
    feesUSD
    id
    liquidity
    liquidityProviderCount
    observationIndex
    protocolFeeToken0
    protocolFeeToken1
    sqrtPrice
    tick
    token0Price
    token1Price
    totalValueLockedNative
    totalValueLockedToken0
    totalValueLockedToken1
    totalValueLockedUSD
    txCount
    untrackedVolumeUSD
    volumeToken0
    volumeToken1
    volumeUSD
  }
}""",
        "EMnAvnfc1fwGSU6ToqYJCeEkXmSgmDmhwtyaha1tM5oi": """{
   pools {
    collectedFeesToken0
    collectedFeesToken1
    collectedFeesUSD
    createdAtBlockNumber
    createdAtTimestamp
    feeGrowthGlobal0X128
    feeGrowthGlobal1X128
    feeTier
    feesUSD
    id
    initialFee
    liquidity
    liquidityProviderCount
    observationIndex
    sqrtPrice
    tick
    token0Price
    token1Price
    totalValueLockedETH
    totalValueLockedToken0
    totalValueLockedToken1
    totalValueLockedUSD
    totalValueLockedUSDUntracked
    txCount
    untrackedVolumeUSD
    volumeToken1
    volumeToken0
    volumeUSD
  }
}""",
    },
    "skimFees": {
        "9cT3GzNxcLWFXGAgqdJsydZkh9ajKEXn4hKvkRLJHgwv": """{
  skimFees {
    amount
    id
    skimToEverscale
  }
}""",
    },
}


def get_query_variants() -> dict[str, dict[str, str]]:
    """Return a copy of all query variants, keyed by query type then endpoint."""
    return {query_type: dict(variants) for query_type, variants in _QUERY_VARIANTS.items()}


def get_endpoint_id(endpoint: str) -> str:
    """Return a short endpoint identifier for logs and topic names."""
    return endpoint[:8]


def get_query_for_endpoint(endpoint: str, query_type: str) -> str:
    """Pick the query for an endpoint: exact match, then partial match, then default.

    Returns an empty string when nothing applies.
    """
    variants = _QUERY_VARIANTS.get(query_type)
    if not variants:
        return ""
    if endpoint in variants:
        return variants[endpoint]
    for variant_endpoint, query in variants.items():
        if variant_endpoint in endpoint or endpoint in variant_endpoint:
            return query
    return variants.get("default", "")