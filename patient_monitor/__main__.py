import asyncio

from patient_monitor.services.monitoring_service import main


def run() -> None:
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    run()
