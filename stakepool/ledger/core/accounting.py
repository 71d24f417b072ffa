# MIT License
# Copyright (c) 2025 Hashborn

from pydantic import BaseModel


class PoolAccounting(BaseModel):
    """
    Pool-wide counters. Mutated only through the methods below, always
    together with the matching registry change.
    """
    total_staked: int = 0
    reward_pool_balance: int = 0
    total_rewards_distributed: int = 0   # Only ever grows
    staker_count: int = 0                # Mirrors the enumeration index length

    def credit_stake(self, amount: int):
        self.total_staked += amount

    def debit_stake(self, amount: int):
        if amount > self.total_staked:
            raise ValueError(f"Cannot release {amount}: only {self.total_staked} staked")
        self.total_staked -= amount

    def fund(self, amount: int) -> int:
        self.reward_pool_balance += amount
        return self.reward_pool_balance

    def pay_reward(self, amount: int):
        if amount > self.reward_pool_balance:
            raise ValueError(f"Reward {amount} exceeds pool balance {self.reward_pool_balance}")
        self.reward_pool_balance -= amount
        self.total_rewards_distributed += amount
