DISKS_WIRE = {
    "ide2": "none,media=cdrom",
    "ide3": "local-lvm:vm-100-cloudinit,media=cdrom",
    "scsi0": "local-lvm:vm-100-disk-0,iothread=1,size=32G",
    "scsi1": "local:100/vm-100-disk-1.qcow2,backup=0,size=10G",
    "virtio0": "local:110/base-110-disk-1.qcow2/100/vm-100-disk-2.qcow2,size=8G",
}
