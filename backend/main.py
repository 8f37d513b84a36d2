import asyncio
import json
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware

from config import CAPTURE_DIR, TICK_INTERVAL_SECONDS
from models.loader import load_all_models
from processing.camera import StreamCamera
from processing.pipeline import VerificationMachine, CAMERA_ERROR
from processing.scheduler import AsyncioScheduler
from processing.storage import FileImageStore

logger = logging.getLogger("uvicorn.error")

COMMANDS = {
    "start": VerificationMachine.start,
    "confirm_blink": VerificationMachine.confirm_blink,
    "confirm_movement": VerificationMachine.confirm_movement,
    "take_photo": VerificationMachine.take_photo,
    "retry_save": VerificationMachine.retry_save,
    "reset": VerificationMachine.reset,
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Loading models...")
    app.state.registry = load_all_models()
    app.state.store = FileImageStore(CAPTURE_DIR)
    logger.info("Server ready.")
    yield


app = FastAPI(lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health")
async def health():
    return {"status": "ok", "face_detector_loaded": app.state.registry.face_detector_loaded}


def _run_command(machine: VerificationMachine, command: str) -> bool:
    if command == "camera_error":
        machine.fail(CAMERA_ERROR)
        return True
    accepted = COMMANDS[command](machine)
    # reset() returns None
    return True if accepted is None else bool(accepted)


@app.websocket("/ws/register/biometric")
async def biometric_registration(websocket: WebSocket):
    await websocket.accept()
    registry = websocket.app.state.registry
    scheduler = AsyncioScheduler()
    camera = StreamCamera()
    machine = VerificationMachine(
        camera=camera,
        detector_factory=registry.create_face_detector,
        store=websocket.app.state.store,
        scheduler=scheduler,
    )
    frame_count = 0

    logger.info("WS biometric session started")

    async def reader():
        """Read frames and commands until the client disconnects."""
        nonlocal frame_count
        try:
            while True:
                message = await websocket.receive()

                if message.get("type") == "websocket.disconnect":
                    break

                if message.get("bytes") is not None:
                    # Always overwrite, only the latest frame matters
                    if camera.push(message["bytes"]):
                        frame_count += 1
                    continue

                if message.get("text") is not None:
                    try:
                        data = json.loads(message["text"])
                    except json.JSONDecodeError:
                        continue
                    command = data.get("type") if isinstance(data, dict) else None
                    if command not in COMMANDS and command != "camera_error":
                        logger.info(f"WS unknown command ignored: {command!r}")
                        continue

                    logger.info(f"WS command received: {command}")
                    accepted = await scheduler.run_exclusive(_run_command, machine, command)
                    await websocket.send_json({
                        "type": "command_ack",
                        "command": command,
                        "accepted": accepted,
                        "step": machine.session.step.value,
                    })

        except (WebSocketDisconnect, RuntimeError):
            pass

    async def publisher():
        """Push the session status whenever it changes."""
        last = None
        try:
            while True:
                await asyncio.sleep(TICK_INTERVAL_SECONDS)
                async with scheduler.lock:
                    status = machine.status()
                if status != last:
                    await websocket.send_json(status)
                    last = status
        except (WebSocketDisconnect, RuntimeError):
            pass
        except asyncio.CancelledError:
            pass

    try:
        await websocket.send_json(machine.status())

        reader_task = asyncio.create_task(reader())
        publisher_task = asyncio.create_task(publisher())

        # When reader finishes (disconnect), cancel publisher
        await reader_task
        publisher_task.cancel()
        try:
            await publisher_task
        except asyncio.CancelledError:
            pass

    except (WebSocketDisconnect, RuntimeError) as e:
        logger.info(f"WS session ended: {type(e).__name__}: {e}")
    finally:
        logger.info(f"WS cleanup: received {frame_count} frames, releasing camera and detector")
        scheduler.shutdown()
        async with scheduler.lock:
            machine.close()
        camera.close()
