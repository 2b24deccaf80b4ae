"""
Corridor demo for the self-adapting learning agent.

The agent walks a 1-D corridor of cells "c0" .. "c{n-1}". Reaching the last
cell pays +1 and sends the agent back to the start; every other move costs a
little. Actions the agent evolves at runtime are treated as staying put.
"""

import random
import argparse

from aurorae.agents.learning import LearningAgent, AgentActor
from logs.logger import get_logger, PrettyPrinter, DONE, LOAD, SAVE

# ===============================
# Initialize Logger
# ===============================
logger = get_logger("Learning Demo")
printer = PrettyPrinter

class Corridor:
    def __init__(self, length: int = 12, slip: float = 0.05):
        self.length = length
        self.slip = slip
        self.position = 0

    @property
    def state(self):
        return f"c{self.position}"

    def step(self, action):
        if random.random() < self.slip:
            action = random.choice(["left", "right"])
        if action == "right":
            self.position = min(self.position + 1, self.length - 1)
        elif action == "left":
            self.position = max(self.position - 1, 0)

        if self.position == self.length - 1:
            self.position = 0
            return 1.0, self.state
        return -0.01, self.state

def run(agent: LearningAgent, env: Corridor, steps: int, use_actor: bool = False) -> float:
    """Drive the agent for a number of steps; returns the total reward collected."""
    total = 0.0
    reward, next_state = 0.0, env.state
    if use_actor:
        with AgentActor(agent) as actor:
            for _ in range(steps):
                action = actor.learn(reward, next_state).result()
                reward, next_state = env.step(action)
                total += reward
        logger.info(f"Last published snapshot at step {actor.snapshot().total_steps}")
        return total

    for _ in range(steps):
        action = agent.learn(reward, next_state)
        reward, next_state = env.step(action)
        total += reward
    return total

# ===============================
# Main Function Entry Point
# ===============================
def main():
    parser = argparse.ArgumentParser(description="Train the learning agent on a corridor")
    parser.add_argument("--steps", type=int, default=3000, help="Number of learning steps")
    parser.add_argument("--length", type=int, default=12, help="Corridor length")
    parser.add_argument("--seed", type=int, default=None, help="Random seed")
    parser.add_argument("--save", type=str, default=None, help="Write a snapshot here when done")
    parser.add_argument("--load", type=str, default=None, help="Resume from a snapshot")
    parser.add_argument("--actor", action="store_true", help="Drive the agent through an AgentActor")
    parser.add_argument("--show-q", action="store_true", help="Print the full Q-table")
    args = parser.parse_args()

    if args.seed is not None:
        random.seed(args.seed)

    env = Corridor(length=args.length)
    if args.load:
        agent = LearningAgent.load(args.load)
        logger.info(f"{LOAD} Resuming from {args.load}: {agent!r}")
    else:
        agent = LearningAgent(["left", "right"], env.state)

    total = run(agent, env, args.steps, use_actor=args.actor)
    logger.info(f"{DONE} {args.steps} steps, total reward {total:.2f}")

    printer.section_header("Performance Report")
    print(agent.performance_report())
    if args.show_q:
        agent.print_q_table()
    agent.strategy_bank.show()

    if args.save:
        agent.save(args.save)
        logger.info(f"{SAVE} Snapshot written to {args.save}")

if __name__ == "__main__":
    main()
